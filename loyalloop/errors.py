"""
Revert errors raised by the ledger, the pool and the host runtime.

Every error aborts the call that raised it; the host restores the state
it had before the call and re-raises.
"""


class RevertError(Exception):
    """Base class for a reverted call. The message is the revert reason."""

    @property
    def reason(self) -> str:
        return str(self)


class AuthorizationError(RevertError):
    """Caller is not the contract owner or not the coupon owner."""
    pass


class ValidationError(RevertError):
    """Raised when validation fails."""
    pass


class LiquidityError(RevertError):
    """Pool counters cannot cover the requested amount."""
    pass


class CouponError(RevertError):
    """Coupon already used, expired or never created."""
    pass


class ReentrancyError(RevertError):
    """A guarded pool method was entered while already executing."""
    pass
