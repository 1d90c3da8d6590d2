"""
Ledger Error Taxonomy

Every rejected action raises one of these. They subclass ValueError so that
callers treating domain violations as ValueError keep working.
"""


class LedgerError(ValueError):
    """Base class for all ledger precondition failures"""
    code = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidSymbol(LedgerError):
    code = "invalid_symbol"


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class MemoTooLong(LedgerError):
    code = "memo_too_long"


class AlreadyExists(LedgerError):
    code = "already_exists"


class NotFound(LedgerError):
    code = "not_found"


class NoBalance(LedgerError):
    code = "no_balance"


class Overdrawn(LedgerError):
    code = "overdrawn"


class SymbolMismatch(LedgerError):
    code = "symbol_mismatch"


class SupplyExceeded(LedgerError):
    code = "supply_exceeded"


class SelfTransfer(LedgerError):
    code = "self_transfer"


class UnknownAccount(LedgerError):
    code = "unknown_account"


class ArithmeticOverflow(LedgerError):
    code = "arithmetic_overflow"


class Unauthorized(LedgerError):
    code = "unauthorized"


class UnknownAction(LedgerError):
    code = "unknown_action"


class CallDepthExceeded(LedgerError):
    code = "call_depth_exceeded"
