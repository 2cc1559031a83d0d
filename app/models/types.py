"""
Column types shared by the referral models.
"""

from sqlalchemy import DECIMAL, String

from app.config.business_constants import AFFILIATE_CODE_MAX_LENGTH

# Balances, order totals and commission amounts: 10 integer + 8 fractional digits
MoneyType = DECIMAL(18, 8)

# Level rate in percent, e.g. 20.0000 or 2.5000
RatePercentType = DECIMAL(10, 4)

# Affiliate and sponsor codes
AffiliateCodeType = String(AFFILIATE_CODE_MAX_LENGTH)
