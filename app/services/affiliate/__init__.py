"""
Affiliate services package.
"""

from app.services.affiliate.directory import (
    AffiliateDirectory,
    ReferralCounterAudit,
)


__all__ = [
    "AffiliateDirectory",
    "ReferralCounterAudit",
]
