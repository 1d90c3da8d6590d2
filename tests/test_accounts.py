"""
Tests for the account ledger

Balance records exist only while positive; absence means zero.
"""

import pytest

from token_ledger.accounts import AccountLedger, balance_key
from token_ledger.asset import Asset, Symbol, INT64_MAX
from token_ledger.errors import ArithmeticOverflow, InvalidAmount, NoBalance, NotFound, Overdrawn
from token_ledger.storage import InMemoryStorage


MNT = Symbol("MNT", 3)
EOS = Symbol("EOS", 4)


def mnt(amount):
    return Asset(amount, MNT)


class TestAccountLedger:
    """Test credit / debit semantics"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger = AccountLedger(self.storage)

    def test_first_credit_creates_record(self):
        """Test the first credit opens a record paid for by the payer"""
        record = self.ledger.credit("alice", mnt(100000), payer="alice")

        assert record.id == balance_key("alice", "MNT") == "alice/MNT"
        assert record.owner == "alice"
        assert record.code == "MNT"
        assert record.payer == "alice"
        assert self.ledger.get_balance("alice", "MNT") == mnt(100000)

    def test_credit_accumulates_and_keeps_payer(self):
        """Test later credits add up and keep the original payer"""
        self.ledger.credit("bob", mnt(1000), payer="alice")
        record = self.ledger.credit("bob", mnt(500), payer="bob")

        assert record.balance == mnt(1500)
        assert record.payer == "alice"

    def test_debit_partial(self):
        """Test a partial debit leaves the remainder"""
        self.ledger.credit("alice", mnt(1000), payer="alice")
        record = self.ledger.debit("alice", mnt(400))

        assert record.balance == mnt(600)
        assert self.ledger.get_balance("alice", "MNT") == mnt(600)

    def test_debit_to_zero_removes_record(self):
        """Test debiting the whole balance deletes the record"""
        self.ledger.credit("alice", mnt(1000), payer="alice")

        assert self.ledger.debit("alice", mnt(1000)) is None
        assert self.ledger.find("alice", "MNT") is None
        with pytest.raises(NotFound):
            self.ledger.get_balance("alice", "MNT")

    def test_debit_without_record(self):
        """Test debiting an owner with no record"""
        with pytest.raises(NoBalance, match="no balance object found"):
            self.ledger.debit("alice", mnt(1))

    def test_overdraw(self):
        """Test debiting more than the balance"""
        self.ledger.credit("alice", mnt(1000), payer="alice")
        with pytest.raises(Overdrawn, match="overdrawn balance"):
            self.ledger.debit("alice", mnt(1001))
        assert self.ledger.get_balance("alice", "MNT") == mnt(1000)

    def test_non_positive_values_rejected(self):
        """Test zero and negative credits and debits"""
        with pytest.raises(InvalidAmount):
            self.ledger.credit("alice", mnt(0), payer="alice")
        with pytest.raises(InvalidAmount):
            self.ledger.debit("alice", mnt(-5))

    def test_credit_overflow(self):
        """Test a credit past int64 is reported"""
        self.ledger.credit("alice", mnt(INT64_MAX), payer="alice")
        with pytest.raises(ArithmeticOverflow):
            self.ledger.credit("alice", mnt(1), payer="alice")
        assert self.ledger.get_balance("alice", "MNT") == mnt(INT64_MAX)

    def test_symbols_are_scoped_per_owner(self):
        """Test balances are keyed by owner and symbol code"""
        self.ledger.credit("alice", mnt(1000), payer="alice")
        self.ledger.credit("alice", Asset(5, EOS), payer="alice")
        self.ledger.credit("bob", mnt(2000), payer="alice")

        assert sorted(r.code for r in self.ledger.balances_for("alice")) == ["EOS", "MNT"]
        assert sorted(r.owner for r in self.ledger.holders("MNT")) == ["alice", "bob"]
        assert self.ledger.total_balance(MNT) == mnt(3000)
        assert self.ledger.total_balance(Symbol("XYZ", 0)) == Asset(0, Symbol("XYZ", 0))
