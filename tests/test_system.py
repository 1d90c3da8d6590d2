"""
Integration tests for the wired ledger system
"""

import pytest
from unittest.mock import Mock

from token_ledger.asset import Asset, Symbol
from token_ledger.config import TokenLedgerConfig
from token_ledger.errors import NotFound, Overdrawn
from token_ledger.events import DomainEvent
from token_ledger.host import InMemoryAccountDirectory
from token_ledger.runtime import Contract
from token_ledger.storage import InMemoryStorage, SQLiteStorage
from token_ledger.system import LedgerSystem, build_system


MNT = Symbol("MNT", 3)


class RecordingGovernance(Contract):
    def __init__(self, account="menteectr"):
        self.account = account
        self.calls = []

    def apply(self, context, action, payload):
        self.calls.append((action, payload))


def make_accounts():
    accounts = InMemoryAccountDirectory(["menteentwk", "menteectr", "alice", "bob"])
    accounts.grant_code("menteectr", "menteentwk")
    return accounts


class TestLedgerSystem:
    """Test the facade end to end"""

    def setup_method(self):
        self.config = TokenLedgerConfig(_env_file=None)
        self.system = LedgerSystem(config=self.config, storage=InMemoryStorage(),
                                   accounts=make_accounts())
        self.governance = RecordingGovernance()
        self.system.deploy(self.governance)

    def test_default_directory_holds_system_accounts(self):
        """Test the self-built directory knows the system accounts only"""
        system = LedgerSystem(config=self.config, storage=InMemoryStorage())
        assert system.accounts.is_account("menteentwk")
        assert system.accounts.is_account("menteectr")
        assert not system.accounts.is_account("alice")
        assert system.accounts.grants_code("menteectr", "menteentwk")

    def test_default_system_runs_relay(self):
        """Test propose and vote on a system that built its own directory"""
        system = LedgerSystem(config=self.config, storage=InMemoryStorage())
        system.accounts.add_account("alice")
        governance = RecordingGovernance()
        system.deploy(governance)

        system.create("alice", "1000.000 MNT")
        system.issue("alice", "100.000 MNT")
        system.propose("alice", "slug", "QmHash", "en", 1)
        system.vote("alice", 1, True, 5)

        assert [call[0] for call in governance.calls] == ["propose2", "vote"]
        assert system.get_balance("alice", "MNT") == Asset(60000, MNT)
        assert system.get_balance("menteectr", "MNT") == Asset(40000, MNT)

    def test_default_system_without_governance_contract(self):
        """Test the relay stakes even when nothing is deployed at the governance account"""
        system = build_system(TokenLedgerConfig(_env_file=None, log_level="WARNING"),
                              storage=InMemoryStorage())
        system.accounts.add_account("alice")
        system.create("alice", "1000.000 MNT")
        system.issue("alice", "100.000 MNT")

        trace = system.propose("alice", "slug", "QmHash", "en", 1)

        assert not trace.forwarded[1].handled
        assert system.get_balance("menteectr", "MNT") == Asset(35000, MNT)

    def test_full_lifecycle(self):
        """Test the facade end to end"""
        self.system.create("alice", "1000.000 MNT")
        self.system.issue("alice", Asset(100000, MNT))
        self.system.transfer("alice", "bob", "40.000 MNT", memo="lunch")
        self.system.burn("bob", "40.000 MNT")

        assert self.system.get_supply("MNT") == Asset(60000, MNT)
        assert self.system.get_balance("alice", "MNT") == Asset(60000, MNT)
        with pytest.raises(NotFound):
            self.system.get_balance("bob", "MNT")

    def test_issue_signs_as_registered_issuer(self):
        """Test issue signs as the registered issuer by default"""
        self.system.create("alice", "1000.000 MNT")
        trace = self.system.issue("bob", "5.000 MNT")

        assert trace.authorization == ("alice",)
        assert self.system.get_balance("bob", "MNT") == Asset(5000, MNT)

    def test_issue_unknown_symbol(self):
        """Test issuing an unregistered symbol"""
        with pytest.raises(NotFound):
            self.system.issue("alice", "5.000 MNT")

    def test_propose_and_vote(self):
        """Test propose and vote through the facade"""
        self.system.create("alice", "1000.000 MNT")
        self.system.issue("alice", "100.000 MNT")

        self.system.propose("alice", "new-logo", "QmHash", "en", 3, comment="fresh look")
        self.system.vote("alice", 1, True, 10)

        assert [call[0] for call in self.governance.calls] == ["propose2", "vote"]
        assert self.system.get_balance("alice", "MNT") == Asset(55000, MNT)
        assert self.system.get_balance("menteectr", "MNT") == Asset(45000, MNT)

    def test_events_reach_subscribers(self):
        """Test events reach subscribers"""
        handler = Mock()
        self.system.event_dispatcher.subscribe(DomainEvent.TOKENS_TRANSFERRED, handler)

        self.system.create("alice", "1000.000 MNT")
        self.system.issue("alice", "10.000 MNT")
        self.system.transfer("alice", "bob", "1.000 MNT")

        handler.assert_called_once()

    def test_conservation_report(self):
        """Test the conservation report"""
        self.system.create("alice", "1000.000 MNT")
        self.system.issue("alice", "100.000 MNT")
        self.system.transfer("alice", "bob", "25.000 MNT")

        assert self.system.conservation_report() == {
            "MNT": {"supply": "100.000 MNT", "balances": "100.000 MNT", "conserved": True}
        }
        assert self.system.conservation_violations() == []

    def test_conservation_violation_detected(self):
        """Test a conservation violation is reported"""
        self.system.create("alice", "1000.000 MNT")
        self.system.issue("alice", "100.000 MNT")

        # Credit outside any action, bypassing issue
        self.system.token.ledger.credit("bob", Asset(1, MNT), payer="bob")

        assert self.system.conservation_violations() == ["MNT"]
        assert self.system.conservation_report()["MNT"]["balances"] == "100.001 MNT"

    def test_audit_can_be_disabled(self):
        """Test running with audit logging disabled"""
        config = TokenLedgerConfig(_env_file=None, enable_audit_logging=False)
        system = LedgerSystem(config=config, storage=InMemoryStorage(), accounts=make_accounts())

        system.create("alice", "10.000 MNT")
        system.issue("alice", "1.000 MNT")

        assert system.audit_trail is None
        assert system.get_supply("MNT") == Asset(1000, MNT)

    def test_rejected_action_keeps_state(self):
        """Test a rejected action keeps state and audit"""
        self.system.create("alice", "1000.000 MNT")
        self.system.issue("alice", "1.000 MNT")

        with pytest.raises(Overdrawn):
            self.system.transfer("alice", "bob", "2.000 MNT")

        assert self.system.get_balance("alice", "MNT") == Asset(1000, MNT)
        assert self.system.audit_trail.count_events() == 2


class TestBuildSystem:
    """Test building a system from configuration"""

    def test_build_from_sqlite_url(self, tmp_path):
        """Test building from a SQLite URL"""
        url = f"sqlite:///{tmp_path / 'ledger.db'}"
        config = TokenLedgerConfig(_env_file=None, storage_url=url, log_level="WARNING")

        first = build_system(config, accounts=make_accounts())
        assert isinstance(first.storage, SQLiteStorage)
        first.create("alice", "1000.000 MNT")
        first.issue("alice", "7.000 MNT")
        first.storage.close()

        second = build_system(config, accounts=make_accounts())
        assert second.get_supply("MNT") == Asset(7000, MNT)
        assert second.audit_trail.verify_integrity()["valid"]
        second.storage.close()
