"""
Pydantic schemas for action payloads

Assets travel in their string form ("40.000 MNT") and are parsed by the
contract, so that a malformed asset is reported as InvalidAmount or
InvalidSymbol rather than as a generic validation error.
"""

from pydantic import BaseModel, ConfigDict, Field

from .asset import Asset


class ActionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# Ledger actions
class CreateAction(ActionModel):
    issuer: str
    maximum_supply: str = Field(..., description="Asset string, e.g. '1000.000 MNT'")

    def maximum_supply_asset(self) -> Asset:
        return Asset.from_string(self.maximum_supply)


class IssueAction(ActionModel):
    to: str
    quantity: str
    memo: str = ""

    def quantity_asset(self) -> Asset:
        return Asset.from_string(self.quantity)


class TransferAction(ActionModel):
    from_: str = Field(..., alias="from")
    to: str
    quantity: str
    memo: str = ""

    def quantity_asset(self) -> Asset:
        return Asset.from_string(self.quantity)


class BurnAction(ActionModel):
    from_: str = Field(..., alias="from")
    quantity: str
    memo: str = ""

    def quantity_asset(self) -> Asset:
        return Asset.from_string(self.quantity)


# Relay actions; the governance contract receives the same fields unchanged
class ProposeAction(ActionModel):
    proposer: str
    slug: str
    ipfs_hash: str
    lang_code: str
    group_id: int
    comment: str = ""
    memo: str = ""


class VoteAction(ActionModel):
    voter: str
    proposal_id: int = Field(..., ge=0)
    approve: bool
    amount: int
    comment: str = ""
    memo: str = ""
