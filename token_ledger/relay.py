"""
Staking Relay Module

propose / vote: each stakes tokens by forwarding a transfer from the acting
identity to the staking account, then forwards the caller's fields unchanged
to the external governance contract. The two calls are sent in that order and
run inside the caller's unit of work, so the governance call never happens
without the stake and both are undone together if either fails. No proposal
or vote state is kept here.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .asset import Asset, Symbol
from .audit import AuditTrail, AuditEventType
from .config import TokenLedgerConfig
from .errors import ArithmeticOverflow, InvalidAmount
from .events import DomainEvent
from .runtime import ActionContext
from .schemas import ProposeAction, TransferAction, VoteAction


@dataclass(frozen=True)
class RelayConfig:
    """Immutable relay constants"""
    staking_account: str
    governance_account: str
    stake_symbol: Symbol
    propose_stake: int  # whole units staked per proposal
    precision_multiplier: int  # minor units per whole unit
    stake_memo: str = "stake for vote"
    propose_action: str = "propose2"
    vote_action: str = "vote"

    def stake_for(self, whole_units: int) -> Asset:
        """Convert whole units to a stake asset; ArithmeticOverflow past int64"""
        return Asset(whole_units * self.precision_multiplier, self.stake_symbol)

    @property
    def propose_stake_asset(self) -> Asset:
        return self.stake_for(self.propose_stake)

    @classmethod
    def from_settings(cls, settings: TokenLedgerConfig) -> 'RelayConfig':
        return cls(
            staking_account=settings.staking_account,
            governance_account=settings.governance_account,
            stake_symbol=Symbol(settings.stake_symbol_code, settings.stake_symbol_precision),
            propose_stake=settings.propose_stake,
            precision_multiplier=settings.precision_multiplier,
            stake_memo=settings.stake_memo,
            propose_action=settings.governance_propose_action,
            vote_action=settings.governance_vote_action
        )


class StakingRelay:
    """Stake-then-forward relay for governance proposals and votes"""

    def __init__(self, config: RelayConfig, audit_trail: Optional[AuditTrail] = None):
        self.config = config
        self.audit_trail = audit_trail

    def propose(self, context: ActionContext, request: ProposeAction) -> Asset:
        """
        Stake the fixed proposal amount, then forward the proposal.

        Returns:
            The stake that was transferred
        """
        context.require_auth(request.proposer)

        stake = self.config.propose_stake_asset
        self._forward(context, request.proposer, stake, self.config.propose_action,
                      request.model_dump())

        self._audit(AuditEventType.PROPOSAL_STAKED, request.slug, request.proposer, {
            "stake": stake.to_string(),
            "group_id": request.group_id,
            "ipfs_hash": request.ipfs_hash
        })
        context.emit(DomainEvent.PROPOSAL_STAKED, "proposal", request.slug, {
            "proposer": request.proposer,
            "stake": stake.to_string()
        })
        return stake

    def vote(self, context: ActionContext, request: VoteAction) -> Asset:
        """
        Stake `amount` whole units, then forward the vote.

        Raises:
            InvalidAmount: amount is not strictly positive (nothing is sent)
            ArithmeticOverflow: amount * multiplier leaves the int64 range
        """
        context.require_auth(request.voter)

        if request.amount <= 0:
            raise InvalidAmount("must transfer a positive amount")
        try:
            stake = self.config.stake_for(request.amount)
        except ArithmeticOverflow:
            raise ArithmeticOverflow(f"vote amount {request.amount} overflows the stake asset")

        self._forward(context, request.voter, stake, self.config.vote_action,
                      request.model_dump())

        proposal = str(request.proposal_id)
        self._audit(AuditEventType.VOTE_STAKED, proposal, request.voter, {
            "stake": stake.to_string(),
            "approve": request.approve
        })
        context.emit(DomainEvent.VOTE_STAKED, "proposal", proposal, {
            "voter": request.voter,
            "approve": request.approve,
            "stake": stake.to_string()
        })
        return stake

    def _forward(self, context: ActionContext, actor: str, stake: Asset,
                 governance_action: str, fields: Dict[str, Any]) -> None:
        # Order matters: the stake transfer must run before the governance call
        context.send(
            context.receiver, "transfer",
            TransferAction(
                from_=actor,
                to=self.config.staking_account,
                quantity=stake.to_string(),
                memo=self.config.stake_memo
            ),
            authorization=[actor]
        )
        context.send(
            self.config.governance_account, governance_action, fields,
            authorization=[self.config.governance_account]
        )

    def _audit(self, event_type: AuditEventType, entity_id: str, actor: str,
               metadata: Dict[str, Any]) -> None:
        if self.audit_trail:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="proposal",
                entity_id=entity_id,
                metadata=metadata,
                actor=actor
            )
