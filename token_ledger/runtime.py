"""
Action Runtime Module

The unit of work every ledger action runs in. A pushed action executes
inside one storage transaction; the forwarded calls it sends run after it
returns, depth-first in send order, inside the same transaction. If any
action in the tree fails, every mutation, audit entry and queued event of the
whole tree is discarded and the failure is re-raised to the caller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from .errors import CallDepthExceeded, LedgerError, Unauthorized, UnknownAccount
from .events import DomainEvent, EventDispatcher, EventPayload
from .host import AccountDirectory, Authorizer, SignedAuthorizer
from .logging_config import get_logger, log_action
from .storage import StorageInterface

# Builds the authorizer for one action from the identities it carries
AuthorizerFactory = Callable[[Iterable[str]], Authorizer]


@dataclass(frozen=True)
class ForwardedCall:
    """A call one action asks the runtime to make as part of the same unit of work"""
    target: str
    action: str
    payload: Dict[str, Any]
    authorization: Tuple[str, ...] = ()


@dataclass
class ActionTrace:
    """Record of one executed action and everything it caused"""
    receiver: str
    action: str
    payload: Dict[str, Any]
    authorization: Tuple[str, ...]
    handled: bool = False  # False when the receiver has no registered contract
    notified: List[str] = field(default_factory=list)
    forwarded: List['ActionTrace'] = field(default_factory=list)

    def walk(self) -> Iterable['ActionTrace']:
        """Yield this trace and every descendant in execution order"""
        yield self
        for child in self.forwarded:
            yield from child.walk()

    def forwarded_calls(self) -> List[Tuple[str, str]]:
        """(receiver, action) of every forwarded call, in execution order"""
        return [(t.receiver, t.action) for t in self.walk()][1:]


class Contract(ABC):
    """Code deployed at an account; receives actions addressed to it"""

    account: str

    @abstractmethod
    def apply(self, context: 'ActionContext', action: str, payload: Dict[str, Any]) -> None:
        pass


class MessageBus(ABC):
    """Capability for sending forwarded calls"""

    @abstractmethod
    def send(self, target: str, action: str, payload: Any,
             authorization: Sequence[str] = ()) -> None:
        pass


class ActionContext(MessageBus):
    """
    What a contract sees while handling one action: its authority, the host
    account directory, and queues for forwarded calls, notifications and
    events. Nothing queued here leaves the runtime unless the unit commits.
    """

    def __init__(self, receiver: str, action: str, authorizer: Authorizer,
                 accounts: AccountDirectory):
        self.receiver = receiver
        self.action = action
        self.authorizer = authorizer
        self.accounts = accounts
        self.outbox: List[ForwardedCall] = []
        self.recipients: List[str] = []
        self.events: List[EventPayload] = []

    def require_auth(self, identity: str) -> None:
        self.authorizer.require(identity)

    def has_auth(self, identity: str) -> bool:
        return self.authorizer.has(identity)

    def is_account(self, name: str) -> bool:
        return self.accounts.is_account(name)

    def require_recipient(self, identity: str) -> None:
        """Ask for `identity` to be notified of this action once it commits"""
        if identity not in self.recipients:
            self.recipients.append(identity)

    def send(self, target: str, action: str, payload: Any,
             authorization: Sequence[str] = ()) -> None:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True)
        self.outbox.append(ForwardedCall(
            target=target,
            action=action,
            payload=dict(payload),
            authorization=tuple(authorization)
        ))

    def emit(self, event_type: DomainEvent, entity_type: str, entity_id: str,
             data: Dict[str, Any]) -> None:
        self.events.append(EventPayload(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            data=data
        ))


class Runtime:
    """
    Executes actions against registered contracts as atomic units of work
    """

    def __init__(
        self,
        storage: StorageInterface,
        accounts: AccountDirectory,
        event_dispatcher: Optional[EventDispatcher] = None,
        max_inline_depth: int = 4,
        authorizer_factory: AuthorizerFactory = SignedAuthorizer
    ):
        self.storage = storage
        self.accounts = accounts
        self.event_dispatcher = event_dispatcher
        self.max_inline_depth = max_inline_depth
        self.authorizer_factory = authorizer_factory
        self.contracts: Dict[str, Contract] = {}
        self.logger = get_logger("token_ledger.runtime")

    def register(self, contract: Contract) -> None:
        """Deploy `contract` at its account"""
        if not self.accounts.is_account(contract.account):
            raise UnknownAccount(f"cannot deploy to unknown account {contract.account}")
        self.contracts[contract.account] = contract

    def push_action(self, target: str, action: str, payload: Any,
                    signers: Iterable[str]) -> ActionTrace:
        """
        Run one externally submitted action and every call it forwards.

        Args:
            target: Account the action is addressed to
            action: Action name
            payload: Action arguments (dict or pydantic model)
            signers: Identities whose authority the submission carries

        Returns:
            ActionTrace of the committed unit

        Raises:
            LedgerError: any precondition failure anywhere in the unit; no
                state change is kept
        """
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True)
        signers = tuple(sorted(set(signers)))
        pending_events: List[EventPayload] = []

        try:
            with self.storage.atomic():
                trace = self._execute(target, action, dict(payload), signers,
                                      0, pending_events)
        except LedgerError as e:
            log_action(
                self.logger, "warning", f"Action rejected: {target}::{action}",
                action=action, resource=target,
                extra={"error": e.code, "reason": e.message, "signers": list(signers)}
            )
            raise
        except Exception as e:
            log_action(
                self.logger, "error", f"Action aborted: {target}::{action}",
                action=action, resource=target,
                extra={"error": type(e).__name__, "reason": str(e)}
            )
            raise

        log_action(
            self.logger, "info", f"Action committed: {target}::{action}",
            action=action, resource=target,
            extra={"forwarded": trace.forwarded_calls(), "signers": list(signers)}
        )

        if self.event_dispatcher:
            for event in pending_events:
                self.event_dispatcher.publish(event)

        return trace

    def _execute(self, target: str, action: str, payload: Dict[str, Any],
                 signers: Tuple[str, ...], depth: int,
                 pending_events: List[EventPayload]) -> ActionTrace:
        if depth > self.max_inline_depth:
            raise CallDepthExceeded(f"forwarded call depth {depth} exceeds {self.max_inline_depth}")
        if not self.accounts.is_account(target):
            raise UnknownAccount(f"target account {target} does not exist")

        trace = ActionTrace(
            receiver=target,
            action=action,
            payload=payload,
            authorization=signers
        )

        authorizer = self.authorizer_factory(signers)
        contract = self.contracts.get(target)
        context = ActionContext(target, action, authorizer, self.accounts)
        if contract is not None:
            contract.apply(context, action, payload)
            trace.handled = True
        else:
            self.logger.debug(f"No contract at {target}; {action} recorded only")

        pending_events.extend(context.events)
        for recipient in context.recipients:
            trace.notified.append(recipient)
            pending_events.append(EventPayload(
                event_type=DomainEvent.ACTION_NOTIFICATION,
                entity_type="account",
                entity_id=recipient,
                data={"receiver": target, "action": action, "payload": payload}
            ))

        for call in context.outbox:
            child_signers = self._forwarded_authority(call, authorizer, target)
            trace.forwarded.append(self._execute(
                call.target, call.action, call.payload, child_signers,
                depth + 1, pending_events
            ))

        return trace

    def _forwarded_authority(self, call: ForwardedCall, parent: Authorizer,
                             sender: str) -> Tuple[str, ...]:
        """A forwarded call may only claim authority the sender can vouch for"""
        for identity in call.authorization:
            if parent.has(identity) or identity == sender:
                continue
            if self.accounts.grants_code(identity, sender):
                continue
            raise Unauthorized(
                f"{sender} cannot send {call.target}::{call.action} as {identity}"
            )
        return tuple(sorted(set(call.authorization)))
