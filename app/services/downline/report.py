"""
Downline report.

Serves the reporting query {affiliateCode, maxDepth} as nested tree JSON.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import settings
from app.schemas.downline import DownlineQuery
from app.services.downline.tree_builder import DownlineTreeBuilder
from app.utils.deadline import deadline_after


class DownlineReportService:
    """Downline reports for affiliates."""

    def __init__(
        self,
        session: AsyncSession,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Initialize downline report service."""
        self.session = session
        self.builder = DownlineTreeBuilder(session, session_maker=session_maker)

    async def get_downline(
        self,
        affiliate_code: str,
        max_depth: int | None = None,
    ) -> dict[str, Any]:
        """
        Render an affiliate's downline.

        Args:
            affiliate_code: Root affiliate code
            max_depth: Requested depth (must not exceed the configured max)

        Returns:
            Dict with success, downline, truncated, truncationReason, nodeCount

        Raises:
            pydantic.ValidationError: If the query is invalid
        """
        query = DownlineQuery(
            affiliate_code=affiliate_code,
            max_depth=(
                max_depth if max_depth is not None else settings.downline_max_depth
            ),
        )

        tree = await self.builder.build_tree(
            query.affiliate_code,
            max_depth=query.max_depth,
            deadline=deadline_after(settings.downline_deadline_seconds),
        )

        if tree is None:
            return {
                "success": False,
                "error": "Affiliate not found",
                "downline": None,
                "truncated": False,
                "truncationReason": None,
                "nodeCount": 0,
            }

        return {"success": True, **tree.to_dict()}
