"""
Business logic constants for the referral commission system.

Central location for business rules shared by services, jobs and scripts.
This module must not import settings to avoid circular imports.
"""

from decimal import Decimal


# Default number of upline levels paid per order
DEFAULT_COMMISSION_DEPTH = 5

# Default depth of a downline report
DEFAULT_DOWNLINE_DEPTH = 5

# Absolute ceiling for any sponsor-chain walk, whatever the configuration
HARD_DEPTH_LIMIT = 20

# Affiliate codes
AFFILIATE_CODE_LENGTH = 10
AFFILIATE_CODE_MAX_LENGTH = 20
AFFILIATE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
AFFILIATE_CODE_GENERATION_ATTEMPTS = 5

# Rate tables (percent)
MIN_LEVEL_RATE = Decimal("0")
MAX_LEVEL_RATE = Decimal("100")
