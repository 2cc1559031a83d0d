"""
Affiliate directory.

Registration and lookup of affiliates. The sponsor link is fixed at
registration; balances are never touched here.
"""

import secrets
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    AFFILIATE_CODE_ALPHABET,
    AFFILIATE_CODE_GENERATION_ATTEMPTS,
    AFFILIATE_CODE_LENGTH,
    HARD_DEPTH_LIMIT,
)
from app.models.affiliate import Affiliate
from app.repositories.affiliate_repository import AffiliateRepository
from app.utils.exceptions import (
    AffiliateNotFoundError,
    DuplicateAffiliateCodeError,
    InvalidSponsorError,
)
from app.utils.validation import validate_affiliate_code


@dataclass(frozen=True)
class ReferralCounterAudit:
    """Stored direct referral counter versus a live recount."""

    code: str
    stored: int
    actual: int

    @property
    def consistent(self) -> bool:
        """Check if the stored counter matches reality."""
        return self.stored == self.actual


def generate_affiliate_code(length: int = AFFILIATE_CODE_LENGTH) -> str:
    """Generate a random upper-case affiliate code."""
    return "".join(
        secrets.choice(AFFILIATE_CODE_ALPHABET) for _ in range(length)
    )


class AffiliateDirectory:
    """Registration and lookup of affiliates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate directory."""
        self.session = session
        self.affiliate_repo = AffiliateRepository(session)

    async def get_by_code(self, code: str) -> Affiliate | None:
        """
        Resolve an affiliate code.

        Args:
            code: Affiliate code

        Returns:
            Affiliate or None
        """
        return await self.affiliate_repo.get_by_code(code)

    async def get_direct_referrals(self, code: str) -> list[Affiliate]:
        """
        Get direct referrals in join order.

        Args:
            code: Sponsor affiliate code

        Returns:
            List of affiliates
        """
        return await self.affiliate_repo.get_direct_referrals(code)

    async def register(
        self,
        sponsor_code: str | None = None,
        name: str | None = None,
        code: str | None = None,
    ) -> Affiliate:
        """
        Register a new affiliate.

        Increments the sponsor's direct referral counter and the
        downline counter of every ancestor.

        Args:
            sponsor_code: Sponsor affiliate code (optional)
            name: Display name (optional)
            code: Explicit affiliate code; generated when omitted

        Returns:
            Created affiliate

        Raises:
            InvalidSponsorError: If sponsor code does not resolve
            DuplicateAffiliateCodeError: If the explicit code is taken
            ValueError: If the explicit code has an invalid format
        """
        if sponsor_code:
            sponsor = await self.affiliate_repo.get_by_code(sponsor_code)
            if not sponsor:
                raise InvalidSponsorError(sponsor_code)

        if code is not None:
            if not validate_affiliate_code(code):
                raise ValueError(f"Invalid affiliate code: {code!r}")
            if await self.affiliate_repo.code_exists(code):
                raise DuplicateAffiliateCodeError(f"Affiliate code taken: {code}")
        else:
            code = await self._generate_unique_code()

        ancestors = (
            await self._collect_ancestors(sponsor_code) if sponsor_code else []
        )

        try:
            affiliate = await self.affiliate_repo.create(
                code=code,
                name=name,
                sponsor_code=sponsor_code or None,
            )
            if sponsor_code:
                await self.affiliate_repo.increment_direct_referrals(sponsor_code)
                await self.affiliate_repo.increment_downline(ancestors)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateAffiliateCodeError(
                f"Affiliate code taken: {code}"
            ) from e

        logger.info(
            "Affiliate registered",
            extra={
                "code": code,
                "sponsor_code": sponsor_code,
                "ancestors_updated": len(ancestors),
            },
        )

        return affiliate

    async def audit_referral_counter(self, code: str) -> ReferralCounterAudit:
        """
        Compare the stored direct referral counter with a live recount.

        Args:
            code: Affiliate code

        Returns:
            Audit result

        Raises:
            AffiliateNotFoundError: If code does not resolve
        """
        affiliate = await self.affiliate_repo.get_by_code(code)
        if not affiliate:
            raise AffiliateNotFoundError(code)

        actual = await self.affiliate_repo.count_direct_referrals(code)
        audit = ReferralCounterAudit(
            code=code,
            stored=affiliate.direct_referral_count,
            actual=actual,
        )

        if not audit.consistent:
            logger.warning(
                "Direct referral counter drift",
                extra={
                    "code": code,
                    "stored": audit.stored,
                    "actual": audit.actual,
                },
            )

        return audit

    async def _collect_ancestors(self, sponsor_code: str) -> list[str]:
        """Sponsor and its upline, bounded and cycle-safe."""
        ancestors: list[str] = []
        seen: set[str] = set()
        current_code: str | None = sponsor_code

        while current_code and len(ancestors) < HARD_DEPTH_LIMIT:
            if current_code in seen:
                logger.warning(
                    "Sponsor cycle detected while collecting ancestors",
                    extra={"sponsor_code": sponsor_code, "repeated": current_code},
                )
                break
            seen.add(current_code)

            affiliate = await self.affiliate_repo.get_by_code(current_code)
            if not affiliate:
                break
            ancestors.append(affiliate.code)
            current_code = affiliate.sponsor_code

        return ancestors

    async def _generate_unique_code(self) -> str:
        """Generate a code not yet used by any affiliate."""
        for _ in range(AFFILIATE_CODE_GENERATION_ATTEMPTS):
            candidate = generate_affiliate_code()
            if not await self.affiliate_repo.code_exists(candidate):
                return candidate

        raise DuplicateAffiliateCodeError(
            "Could not generate a unique affiliate code"
        )
