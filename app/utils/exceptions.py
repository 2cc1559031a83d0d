"""
Exception handling utilities.

Domain exceptions raised by the referral commission services.
"""


class ReferralError(Exception):
    """Base class for referral commission errors."""
    pass


class AffiliateNotFoundError(ReferralError):
    """Raised when an affiliate code does not resolve."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Affiliate not found: {code}")


class InvalidSponsorError(ReferralError):
    """Raised when registration references an unknown sponsor code."""

    def __init__(self, sponsor_code: str) -> None:
        self.sponsor_code = sponsor_code
        super().__init__(f"Invalid referral code: {sponsor_code}")


class DuplicateAffiliateCodeError(ReferralError):
    """Raised when an affiliate code is already taken."""
    pass


class InvalidRateTableError(ReferralError):
    """Raised when a product rate table has bad levels or rates."""
    pass


class BalanceCreditError(ReferralError):
    """Raised when a guarded balance credit could not be applied."""
    pass


class BalanceTransitionError(ReferralError):
    """Raised when moving funds between balance columns failed."""
    pass


class CommissionStateError(ReferralError):
    """Raised on an illegal commission status transition."""
    pass

