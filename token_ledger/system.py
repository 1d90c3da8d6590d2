"""
Ledger System Module

Wires storage, host capabilities, audit trail, event dispatcher, runtime and
the token contract (with its staking relay) together, and offers one method
per externally invocable action plus the read-only queries.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from .asset import Asset
from .audit import AuditTrail
from .config import TokenLedgerConfig, get_config
from .contract import TokenContract
from .events import EventDispatcher
from .host import AccountDirectory, InMemoryAccountDirectory, SignedAuthorizer
from .logging_config import setup_logging
from .relay import RelayConfig, StakingRelay
from .runtime import ActionTrace, AuthorizerFactory, Contract, Runtime
from .schemas import BurnAction, CreateAction, IssueAction, ProposeAction, TransferAction, VoteAction
from .storage import StorageInterface, storage_from_url

AssetLike = Union[Asset, str]


def _asset_string(value: AssetLike) -> str:
    return value.to_string() if isinstance(value, Asset) else value


class LedgerSystem:
    """
    A deployed token ledger. Action methods sign with the identity the
    action requires unless explicit `signers` are given.
    """

    def __init__(
        self,
        config: Optional[TokenLedgerConfig] = None,
        storage: Optional[StorageInterface] = None,
        accounts: Optional[AccountDirectory] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        authorizer_factory: AuthorizerFactory = SignedAuthorizer
    ):
        self.config = config or get_config()
        self.storage = storage or storage_from_url(self.config.storage_url)
        if accounts is None:
            accounts = InMemoryAccountDirectory({
                self.config.contract_account,
                self.config.governance_account,
                self.config.staking_account
            })
            # The relay forwards governance calls under the governance account
            accounts.grant_code(self.config.governance_account, self.config.contract_account)
        self.accounts = accounts
        self.event_dispatcher = event_dispatcher or EventDispatcher()
        self.audit_trail = AuditTrail(self.storage) if self.config.enable_audit_logging else None

        self.relay = StakingRelay(RelayConfig.from_settings(self.config), self.audit_trail)
        self.token = TokenContract(
            self.config.contract_account,
            self.storage,
            audit_trail=self.audit_trail,
            relay=self.relay,
            max_memo_bytes=self.config.max_memo_bytes
        )
        self.runtime = Runtime(
            self.storage,
            self.accounts,
            event_dispatcher=self.event_dispatcher,
            max_inline_depth=self.config.max_inline_depth,
            authorizer_factory=authorizer_factory
        )
        self.runtime.register(self.token)

    def deploy(self, contract: Contract) -> None:
        """Register another contract (e.g. the governance contract) with the runtime"""
        self.runtime.register(contract)

    def _push(self, action: str, payload, signers: Iterable[str]) -> ActionTrace:
        return self.runtime.push_action(self.config.contract_account, action, payload, signers)

    # Actions

    def create(self, issuer: str, maximum_supply: AssetLike,
               signers: Optional[Iterable[str]] = None) -> ActionTrace:
        payload = CreateAction(issuer=issuer, maximum_supply=_asset_string(maximum_supply))
        return self._push("create", payload, signers if signers is not None else [self.config.contract_account])

    def issue(self, to: str, quantity: AssetLike, memo: str = "",
              signers: Optional[Iterable[str]] = None) -> ActionTrace:
        payload = IssueAction(to=to, quantity=_asset_string(quantity), memo=memo)
        if signers is None:
            record = self.token.registry.find(Asset.from_string(payload.quantity).symbol.code)
            signers = [record.issuer] if record else []
        return self._push("issue", payload, signers)

    def transfer(self, from_: str, to: str, quantity: AssetLike, memo: str = "",
                 signers: Optional[Iterable[str]] = None) -> ActionTrace:
        payload = TransferAction(from_=from_, to=to, quantity=_asset_string(quantity), memo=memo)
        return self._push("transfer", payload, signers if signers is not None else [from_])

    def burn(self, from_: str, quantity: AssetLike, memo: str = "",
             signers: Optional[Iterable[str]] = None) -> ActionTrace:
        payload = BurnAction(from_=from_, quantity=_asset_string(quantity), memo=memo)
        return self._push("burn", payload, signers if signers is not None else [from_])

    def propose(self, proposer: str, slug: str, ipfs_hash: str, lang_code: str,
                group_id: int, comment: str = "", memo: str = "",
                signers: Optional[Iterable[str]] = None) -> ActionTrace:
        payload = ProposeAction(
            proposer=proposer, slug=slug, ipfs_hash=ipfs_hash, lang_code=lang_code,
            group_id=group_id, comment=comment, memo=memo
        )
        return self._push("propose", payload, signers if signers is not None else [proposer])

    def vote(self, voter: str, proposal_id: int, approve: bool, amount: int,
             comment: str = "", memo: str = "",
             signers: Optional[Iterable[str]] = None) -> ActionTrace:
        payload = VoteAction(
            voter=voter, proposal_id=proposal_id, approve=approve, amount=amount,
            comment=comment, memo=memo
        )
        return self._push("vote", payload, signers if signers is not None else [voter])

    # Queries

    def get_supply(self, code: str) -> Asset:
        return self.token.get_supply(code)

    def get_balance(self, owner: str, code: str) -> Asset:
        return self.token.get_balance(owner, code)

    def conservation_report(self) -> Dict[str, Dict[str, Any]]:
        """Supply versus summed balances for every registered symbol"""
        report = {}
        for record in self.token.registry.all_records():
            total = self.token.ledger.total_balance(record.supply.symbol)
            report[record.id] = {
                "supply": record.supply.to_string(),
                "balances": total.to_string(),
                "conserved": total == record.supply
            }
        return report

    def conservation_violations(self) -> List[str]:
        """Symbol codes whose supply differs from the sum of balances"""
        return [code for code, row in self.conservation_report().items() if not row["conserved"]]


def build_system(config: Optional[TokenLedgerConfig] = None, **kwargs) -> LedgerSystem:
    """Configure logging from `config` and return a wired LedgerSystem"""
    config = config or get_config()
    setup_logging(config.log_level, logger_name="token_ledger", log_format=config.log_format)
    return LedgerSystem(config=config, **kwargs)
