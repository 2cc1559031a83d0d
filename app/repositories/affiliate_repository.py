"""
Affiliate repository.

Data access layer for Affiliate model. Balance columns are not writable
through this repository; see BalanceLedgerGuard.
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import Affiliate
from app.models.enums import BalanceField
from app.repositories.base import BaseRepository


PROTECTED_BALANCE_FIELDS = frozenset(field.value for field in BalanceField)


class AffiliateRepository(BaseRepository[Affiliate]):
    """Affiliate repository with referral graph queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate repository."""
        super().__init__(Affiliate, session)

    async def get_by_code(self, code: str) -> Affiliate | None:
        """
        Get affiliate by code.

        Args:
            code: Affiliate code

        Returns:
            Affiliate or None
        """
        return await self.get_by(code=code)

    async def code_exists(self, code: str) -> bool:
        """Check if an affiliate code is taken."""
        return await self.exists(code=code)

    async def get_direct_referrals(
        self, sponsor_code: str
    ) -> list[Affiliate]:
        """
        Get affiliates sponsored directly by the given code.

        Ordered by join time, then code, so output is deterministic.

        Args:
            sponsor_code: Sponsor affiliate code

        Returns:
            List of direct referrals
        """
        stmt = (
            select(Affiliate)
            .where(Affiliate.sponsor_code == sponsor_code)
            .order_by(Affiliate.created_at, Affiliate.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_direct_referrals_for_many(
        self, sponsor_codes: Iterable[str]
    ) -> list[Affiliate]:
        """
        Get direct referrals of several sponsors in one query.

        Uses the sponsor_code index. Ordered by join time, then code.

        Args:
            sponsor_codes: Sponsor affiliate codes

        Returns:
            List of referrals of any of the sponsors
        """
        codes = list(sponsor_codes)
        if not codes:
            return []

        stmt = (
            select(Affiliate)
            .where(Affiliate.sponsor_code.in_(codes))
            .order_by(Affiliate.created_at, Affiliate.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_direct_referrals(self, sponsor_code: str) -> int:
        """
        Live count of direct referrals (ignores the stored counter).

        Args:
            sponsor_code: Sponsor affiliate code

        Returns:
            Number of affiliates whose sponsor is the given code
        """
        stmt = select(func.count(Affiliate.id)).where(
            Affiliate.sponsor_code == sponsor_code
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def increment_direct_referrals(self, code: str) -> None:
        """Atomically bump the stored direct referral counter."""
        stmt = (
            update(Affiliate)
            .where(Affiliate.code == code)
            .values(direct_referral_count=Affiliate.direct_referral_count + 1)
        )
        await self.session.execute(stmt)

    async def increment_downline(self, codes: Iterable[str]) -> None:
        """Atomically bump the downline counter of every given affiliate."""
        codes = list(codes)
        if not codes:
            return

        stmt = (
            update(Affiliate)
            .where(Affiliate.code.in_(codes))
            .values(downline_count=Affiliate.downline_count + 1)
        )
        await self.session.execute(stmt)

    async def update(
        self, id: int, for_update: bool = False, **data: Any
    ) -> Affiliate | None:
        """
        Update affiliate by ID.

        Raises:
            ValueError: If a balance column is among the updated fields
        """
        forbidden = PROTECTED_BALANCE_FIELDS.intersection(data)
        if forbidden:
            raise ValueError(
                f"Balance fields {sorted(forbidden)} can only be changed "
                f"through BalanceLedgerGuard"
            )
        if "sponsor_code" in data:
            raise ValueError("Sponsor link is immutable after registration")

        return await super().update(id, for_update=for_update, **data)
