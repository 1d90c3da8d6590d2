"""
Account Ledger Module

Per-owner, per-symbol balance records. A record exists only while its
balance is positive: the first credit creates it (charged to a payer), and a
debit to exactly zero removes it. Absence of a record means zero.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .asset import Asset, Symbol
from .errors import InvalidAmount, NoBalance, NotFound, Overdrawn
from .storage import StorageInterface, StorageRecord


def balance_key(owner: str, code: str) -> str:
    """Storage key: the owner's scope followed by the symbol code"""
    return f"{owner}/{code}"


@dataclass
class AccountBalance(StorageRecord):
    """One owner's holding of one symbol"""
    owner: str
    balance: Asset
    payer: str  # Identity charged for the record's storage

    @property
    def code(self) -> str:
        return self.balance.symbol.code

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['balance'] = self.balance.to_string()
        result['code'] = self.code
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountBalance':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            owner=data['owner'],
            balance=Asset.from_string(data['balance']),
            payer=data['payer']
        )


class AccountLedger:
    """Balance records keyed by (owner, symbol code)"""

    def __init__(self, storage: StorageInterface, table_name: str = "accounts"):
        self.storage = storage
        self.table_name = table_name

    def find(self, owner: str, code: str) -> Optional[AccountBalance]:
        data = self.storage.load(self.table_name, balance_key(owner, code))
        if data:
            return AccountBalance.from_dict(data)
        return None

    def get_balance(self, owner: str, code: str) -> Asset:
        record = self.find(owner, code)
        if record is None:
            raise NotFound(f"no balance of {code} for {owner}")
        return record.balance

    def debit(self, owner: str, value: Asset) -> Optional[AccountBalance]:
        """
        Take `value` out of owner's balance.

        Returns:
            The updated record, or None if the balance reached zero and the
            record was removed

        Raises:
            NoBalance: owner holds no record for the symbol
            Overdrawn: balance is smaller than value
        """
        if value.amount <= 0:
            raise InvalidAmount("debit amount must be positive")
        record = self.find(owner, value.symbol.code)
        if record is None:
            raise NoBalance(f"no balance object found for {owner}")
        if record.balance.amount < value.amount:
            raise Overdrawn(f"overdrawn balance: {owner} holds {record.balance.to_string()}")

        if record.balance.amount == value.amount:
            self.storage.delete(self.table_name, record.id)
            return None

        record.balance = record.balance - value
        record.updated_at = datetime.now(timezone.utc)
        self._save(record)
        return record

    def credit(self, owner: str, value: Asset, payer: str) -> AccountBalance:
        """
        Add `value` to owner's balance, creating the record at `payer`'s
        expense if owner holds none yet.

        Raises:
            ArithmeticOverflow: the new balance leaves the int64 range
        """
        if value.amount <= 0:
            raise InvalidAmount("credit amount must be positive")
        record = self.find(owner, value.symbol.code)
        now = datetime.now(timezone.utc)

        if record is None:
            record = AccountBalance(
                id=balance_key(owner, value.symbol.code),
                created_at=now,
                updated_at=now,
                owner=owner,
                balance=value,
                payer=payer
            )
        else:
            record.balance = record.balance + value
            record.updated_at = now

        self._save(record)
        return record

    def balances_for(self, owner: str) -> List[AccountBalance]:
        """Every symbol the owner holds"""
        found = self.storage.find(self.table_name, {'owner': owner})
        return [AccountBalance.from_dict(data) for data in found]

    def holders(self, code: str) -> List[AccountBalance]:
        """Every owner holding the symbol code"""
        found = self.storage.find(self.table_name, {'code': code})
        return [AccountBalance.from_dict(data) for data in found]

    def total_balance(self, symbol: Symbol) -> Asset:
        """Sum of all balances of `symbol`"""
        total = Asset.zero(symbol)
        for record in self.holders(symbol.code):
            total = total + record.balance
        return total

    def _save(self, record: AccountBalance) -> None:
        self.storage.save(self.table_name, record.id, record.to_dict())
