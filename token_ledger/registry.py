"""
Supply Registry Module

One record per symbol code tracking current supply, maximum supply and the
issuing identity. Records are created once and never deleted; supply always
stays within [0, max_supply].
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .asset import Asset
from .errors import AlreadyExists, InvalidAmount, NotFound, SupplyExceeded, SymbolMismatch
from .storage import StorageInterface, StorageRecord


@dataclass
class SupplyRecord(StorageRecord):
    """Supply statistics for one token symbol; id is the symbol code"""
    supply: Asset
    max_supply: Asset
    issuer: str

    def __post_init__(self):
        if self.supply.symbol != self.max_supply.symbol:
            raise SymbolMismatch("supply and max_supply must share a symbol")

    @property
    def available(self) -> int:
        """Minor units that may still be issued"""
        return self.max_supply.amount - self.supply.amount

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['supply'] = self.supply.to_string()
        result['max_supply'] = self.max_supply.to_string()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SupplyRecord':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            supply=Asset.from_string(data['supply']),
            max_supply=Asset.from_string(data['max_supply']),
            issuer=data['issuer']
        )


class SupplyRegistry:
    """Keyed collection of SupplyRecords"""

    def __init__(self, storage: StorageInterface, table_name: str = "stat"):
        self.storage = storage
        self.table_name = table_name

    def find(self, code: str) -> Optional[SupplyRecord]:
        data = self.storage.load(self.table_name, code)
        if data:
            return SupplyRecord.from_dict(data)
        return None

    def get(self, code: str) -> SupplyRecord:
        record = self.find(code)
        if record is None:
            raise NotFound(f"token with symbol {code} does not exist")
        return record

    def exists(self, code: str) -> bool:
        return self.storage.exists(self.table_name, code)

    def insert(self, issuer: str, max_supply: Asset) -> SupplyRecord:
        """Register a new symbol with zero supply"""
        code = max_supply.symbol.code
        if self.exists(code):
            raise AlreadyExists(f"token with symbol {code} already exists")

        now = datetime.now(timezone.utc)
        record = SupplyRecord(
            id=code,
            created_at=now,
            updated_at=now,
            supply=Asset.zero(max_supply.symbol),
            max_supply=max_supply,
            issuer=issuer
        )
        self._save(record)
        return record

    def add_supply(self, record: SupplyRecord, quantity: Asset) -> SupplyRecord:
        if quantity.amount > record.available:
            raise SupplyExceeded(
                f"quantity {quantity.to_string()} exceeds available supply of {record.id}"
            )
        record.supply = record.supply + quantity
        record.updated_at = datetime.now(timezone.utc)
        self._save(record)
        return record

    def reduce_supply(self, record: SupplyRecord, quantity: Asset) -> SupplyRecord:
        remaining = record.supply - quantity
        if remaining.amount < 0:
            raise InvalidAmount(f"burn of {quantity.to_string()} exceeds supply of {record.id}")
        record.supply = remaining
        record.updated_at = datetime.now(timezone.utc)
        self._save(record)
        return record

    def all_records(self) -> List[SupplyRecord]:
        return [SupplyRecord.from_dict(data) for data in self.storage.load_all(self.table_name)]

    def _save(self, record: SupplyRecord) -> None:
        self.storage.save(self.table_name, record.id, record.to_dict())
