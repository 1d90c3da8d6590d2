"""
Token Contract Module

The ledger operations (create / issue / transfer / burn) and read-only
queries over the Supply Registry and Account Ledger. Every mutating
operation checks authority and preconditions before touching state; the
Runtime's unit of work makes each one all-or-nothing together with the calls
it forwards.

Conservation: for every symbol, registry supply equals the sum of all
account balances. Issue and burn change supply and exactly one balance by the
same amount; transfer moves value between two balances and leaves supply
alone. Issuing to a third party is issue-to-issuer followed by an ordinary
forwarded transfer.
"""

from typing import Any, Callable, Dict, Optional, Type

from pydantic import ValidationError

from .accounts import AccountLedger
from .asset import Asset
from .audit import AuditTrail, AuditEventType
from .errors import InvalidAmount, InvalidSymbol, MemoTooLong, SelfTransfer, SymbolMismatch, UnknownAccount, UnknownAction
from .events import DomainEvent
from .registry import SupplyRecord, SupplyRegistry
from .runtime import ActionContext, Contract
from .schemas import ActionModel, BurnAction, CreateAction, IssueAction, TransferAction, ProposeAction, VoteAction
from .storage import StorageInterface
from .relay import StakingRelay
from .logging_config import get_logger


class TokenContract(Contract):
    """
    Fungible token ledger deployed at `account`. The account itself is the
    controlling identity that may create new symbols.
    """

    def __init__(
        self,
        account: str,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        relay: Optional[StakingRelay] = None,
        max_memo_bytes: int = 256
    ):
        self.account = account
        self.storage = storage
        self.registry = SupplyRegistry(storage)
        self.ledger = AccountLedger(storage)
        self.audit_trail = audit_trail
        self.relay = relay
        self.max_memo_bytes = max_memo_bytes
        self.logger = get_logger("token_ledger.token")

        self._actions: Dict[str, Callable[[ActionContext, Dict[str, Any]], None]] = {
            "create": self._apply_create,
            "issue": self._apply_issue,
            "transfer": self._apply_transfer,
            "burn": self._apply_burn,
            "propose": self._apply_propose,
            "vote": self._apply_vote,
        }

    def apply(self, context: ActionContext, action: str, payload: Dict[str, Any]) -> None:
        handler = self._actions.get(action)
        if handler is None:
            raise UnknownAction(f"{self.account} has no action {action}")
        handler(context, payload)

    # Payload adapters

    def _parse(self, model: Type[ActionModel], action: str, payload: Dict[str, Any]) -> ActionModel:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise InvalidAmount(f"malformed {action} payload: {e}")

    def _apply_create(self, context: ActionContext, payload: Dict[str, Any]) -> None:
        request = self._parse(CreateAction, "create", payload)
        self.create(context, request.issuer, request.maximum_supply_asset())

    def _apply_issue(self, context: ActionContext, payload: Dict[str, Any]) -> None:
        request = self._parse(IssueAction, "issue", payload)
        self.issue(context, request.to, request.quantity_asset(), request.memo)

    def _apply_transfer(self, context: ActionContext, payload: Dict[str, Any]) -> None:
        request = self._parse(TransferAction, "transfer", payload)
        self.transfer(context, request.from_, request.to, request.quantity_asset(), request.memo)

    def _apply_burn(self, context: ActionContext, payload: Dict[str, Any]) -> None:
        request = self._parse(BurnAction, "burn", payload)
        self.burn(context, request.from_, request.quantity_asset(), request.memo)

    def _apply_propose(self, context: ActionContext, payload: Dict[str, Any]) -> None:
        if self.relay is None:
            raise UnknownAction(f"{self.account} has no staking relay")
        self.relay.propose(context, self._parse(ProposeAction, "propose", payload))

    def _apply_vote(self, context: ActionContext, payload: Dict[str, Any]) -> None:
        if self.relay is None:
            raise UnknownAction(f"{self.account} has no staking relay")
        self.relay.vote(context, self._parse(VoteAction, "vote", payload))

    # Ledger operations

    def create(self, context: ActionContext, issuer: str, maximum_supply: Asset) -> SupplyRecord:
        """
        Register a new symbol with zero supply.

        Raises:
            Unauthorized: the contract account did not authorize
            InvalidSymbol: malformed symbol
            InvalidAmount: max supply invalid or not positive
            AlreadyExists: the symbol code is already registered
        """
        context.require_auth(self.account)

        if not maximum_supply.symbol.is_valid():
            raise InvalidSymbol("invalid symbol name")
        if not maximum_supply.is_valid():
            raise InvalidAmount("invalid supply")
        if maximum_supply.amount <= 0:
            raise InvalidAmount("max-supply must be positive")

        record = self.registry.insert(issuer, maximum_supply)

        self._audit(AuditEventType.TOKEN_CREATED, record.id, self.account, {
            "issuer": issuer,
            "max_supply": maximum_supply.to_string()
        })
        context.emit(DomainEvent.TOKEN_CREATED, "token", record.id, {
            "issuer": issuer,
            "max_supply": maximum_supply.to_string()
        })
        return record

    def issue(self, context: ActionContext, to: str, quantity: Asset, memo: str) -> None:
        """
        Mint `quantity` to the issuer, then forward a transfer to `to` when
        the recipient is someone else.

        Raises:
            InvalidSymbol, MemoTooLong, NotFound, Unauthorized (issuer),
            InvalidAmount, SymbolMismatch, SupplyExceeded
        """
        if not quantity.symbol.is_valid():
            raise InvalidSymbol("invalid symbol name")
        self._check_memo(memo)

        record = self.registry.get(quantity.symbol.code)
        context.require_auth(record.issuer)

        if not quantity.is_valid():
            raise InvalidAmount("invalid quantity")
        if quantity.amount <= 0:
            raise InvalidAmount("must issue positive quantity")
        if quantity.symbol != record.supply.symbol:
            raise SymbolMismatch("symbol precision mismatch")

        self.registry.add_supply(record, quantity)
        self.ledger.credit(record.issuer, quantity, payer=record.issuer)

        self._audit(AuditEventType.TOKENS_ISSUED, record.id, record.issuer, {
            "to": to,
            "quantity": quantity.to_string(),
            "supply": record.supply.to_string(),
            "memo": memo
        })
        context.emit(DomainEvent.TOKENS_ISSUED, "token", record.id, {
            "issuer": record.issuer,
            "to": to,
            "quantity": quantity.to_string()
        })

        if to != record.issuer:
            self.logger.debug(f"Forwarding issued {quantity.to_string()} from {record.issuer} to {to}")
            context.send(
                self.account, "transfer",
                TransferAction(from_=record.issuer, to=to, quantity=quantity.to_string(), memo=memo),
                authorization=[record.issuer]
            )

    def transfer(self, context: ActionContext, from_: str, to: str, quantity: Asset, memo: str) -> None:
        """
        Move `quantity` from one owner to another. Both parties are notified.

        Raises:
            SelfTransfer, Unauthorized (from), UnknownAccount, NotFound,
            InvalidSymbol, InvalidAmount, SymbolMismatch, MemoTooLong,
            NoBalance, Overdrawn, ArithmeticOverflow
        """
        if from_ == to:
            raise SelfTransfer("cannot transfer to self")
        context.require_auth(from_)
        if not context.is_account(to):
            raise UnknownAccount(f"to account {to} does not exist")

        record = self.registry.get(quantity.symbol.code)

        context.require_recipient(from_)
        context.require_recipient(to)

        if not quantity.symbol.is_valid():
            raise InvalidSymbol("invalid symbol name")
        if not quantity.is_valid():
            raise InvalidAmount("invalid quantity")
        if quantity.amount <= 0:
            raise InvalidAmount("must transfer positive quantity")
        if quantity.symbol != record.supply.symbol:
            raise SymbolMismatch("symbol precision mismatch")
        self._check_memo(memo)

        self.ledger.debit(from_, quantity)
        self.ledger.credit(to, quantity, payer=from_)

        self._audit(AuditEventType.TOKENS_TRANSFERRED, record.id, from_, {
            "from": from_,
            "to": to,
            "quantity": quantity.to_string(),
            "memo": memo
        })
        context.emit(DomainEvent.TOKENS_TRANSFERRED, "token", record.id, {
            "from": from_,
            "to": to,
            "quantity": quantity.to_string(),
            "memo": memo
        })

    def burn(self, context: ActionContext, from_: str, quantity: Asset, memo: str) -> None:
        """
        Destroy `quantity` held by `from_`, reducing supply by the same amount.

        Raises:
            Unauthorized (from), InvalidSymbol, MemoTooLong, NotFound,
            InvalidAmount, SymbolMismatch, NoBalance, Overdrawn
        """
        context.require_auth(from_)
        if not quantity.symbol.is_valid():
            raise InvalidSymbol("invalid symbol name")
        self._check_memo(memo)

        record = self.registry.get(quantity.symbol.code)

        if not quantity.is_valid():
            raise InvalidAmount("invalid quantity")
        if quantity.amount <= 0:
            raise InvalidAmount("must burn positive quantity")
        if quantity.symbol != record.supply.symbol:
            raise SymbolMismatch("symbol precision mismatch")

        # Debit first so an oversized burn reports Overdrawn/NoBalance
        self.ledger.debit(from_, quantity)
        self.registry.reduce_supply(record, quantity)

        self._audit(AuditEventType.TOKENS_BURNED, record.id, from_, {
            "from": from_,
            "quantity": quantity.to_string(),
            "supply": record.supply.to_string(),
            "memo": memo
        })
        context.emit(DomainEvent.TOKENS_BURNED, "token", record.id, {
            "from": from_,
            "quantity": quantity.to_string()
        })

    # Read-only queries

    def get_supply(self, code: str) -> Asset:
        """Current supply of a symbol; NotFound if never created"""
        return self.registry.get(code).supply

    def get_balance(self, owner: str, code: str) -> Asset:
        """Owner's balance of a symbol; NotFound if the owner holds none"""
        return self.ledger.get_balance(owner, code)

    def _check_memo(self, memo: str) -> None:
        if len(memo.encode("utf-8")) > self.max_memo_bytes:
            raise MemoTooLong(f"memo has more than {self.max_memo_bytes} bytes")

    def _audit(self, event_type: AuditEventType, code: str, actor: str, metadata: Dict[str, Any]) -> None:
        if self.audit_trail:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="token",
                entity_id=code,
                metadata=metadata,
                actor=actor
            )
