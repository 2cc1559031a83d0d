"""
Downline tree builder.

Read-only, level-order walk of the referral relation below an affiliate.
Depth is capped, a node budget and a deadline bound the cost on wide
networks, and a code already placed in the tree is never expanded twice.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import settings
from app.models.affiliate import Affiliate
from app.repositories.affiliate_repository import AffiliateRepository
from app.utils.datetime_utils import ensure_utc
from app.utils.deadline import deadline_passed


class TruncationReason:
    """Why a tree was cut short."""

    NODE_BUDGET = "node_budget"
    DEADLINE = "deadline"


@dataclass
class TreeNode:
    """One affiliate in a rendered downline tree."""

    code: str
    name: str | None
    sponsor_code: str | None
    depth: int
    total_earnings: Decimal
    direct_referral_count: int
    downline_count: int
    joined_at: datetime | None
    children: list["TreeNode"] = field(default_factory=list)

    @property
    def level(self) -> int:
        """1-based level (root is level 1)."""
        return self.depth + 1

    @classmethod
    def from_affiliate(cls, affiliate: Affiliate, depth: int) -> "TreeNode":
        """Copy the reported fields out of an Affiliate row."""
        return cls(
            code=affiliate.code,
            name=affiliate.name,
            sponsor_code=affiliate.sponsor_code,
            depth=depth,
            total_earnings=affiliate.total_earnings,
            direct_referral_count=affiliate.direct_referral_count,
            downline_count=affiliate.downline_count,
            joined_at=ensure_utc(affiliate.created_at),
        )

    def iter_nodes(self):
        """Yield this node and all descendants, parents first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        """Nested JSON shape of the subtree."""
        return {
            "code": self.code,
            "name": self.name,
            "sponsorCode": self.sponsor_code,
            "depth": self.depth,
            "level": self.level,
            "totalEarnings": str(self.total_earnings),
            "directReferralCount": self.direct_referral_count,
            "downlineCount": self.downline_count,
            "joinedAt": self.joined_at.isoformat() if self.joined_at else None,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class DownlineTree:
    """A rendered tree plus truncation metadata."""

    root: TreeNode
    max_depth: int
    node_count: int
    truncated: bool = False
    truncation_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Report shape."""
        return {
            "downline": self.root.to_dict(),
            "maxDepth": self.max_depth,
            "nodeCount": self.node_count,
            "truncated": self.truncated,
            "truncationReason": self.truncation_reason,
        }


class DownlineTreeBuilder:
    """
    Builds depth-bounded downline trees.

    With a session factory, the child lookups of one tree level are
    split into batches and fetched concurrently on separate sessions,
    at most max_workers at a time. Without one, batches run sequentially
    on the given session.
    """

    def __init__(
        self,
        session: AsyncSession,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        max_workers: int | None = None,
        batch_size: int | None = None,
        node_budget: int | None = None,
    ) -> None:
        """
        Initialize downline tree builder.

        Args:
            session: Async database session (root lookup, sequential fetches)
            session_maker: Optional factory for concurrent fetches
            max_workers: Concurrent batch fetches (defaults to settings)
            batch_size: Sponsor codes per query (defaults to settings)
            node_budget: Default node budget (defaults to settings)
        """
        self.session = session
        self.session_maker = session_maker
        self.max_workers = max_workers or settings.downline_max_workers
        self.batch_size = batch_size or settings.downline_fetch_batch_size
        self.node_budget = node_budget or settings.downline_node_budget
        self.affiliate_repo = AffiliateRepository(session)

    async def build_tree(
        self,
        root_code: str,
        max_depth: int | None = None,
        node_budget: int | None = None,
        deadline: float | None = None,
    ) -> DownlineTree | None:
        """
        Build the downline tree of an affiliate.

        Args:
            root_code: Root affiliate code
            max_depth: Depth of the deepest rendered level (root is 0);
                clamped to the configured maximum
            node_budget: Max nodes in the tree, root included
            deadline: Absolute loop-time deadline (optional)

        Returns:
            DownlineTree, or None if the root does not resolve

        Raises:
            ValueError: If max_depth or node_budget is negative/zero
        """
        max_depth = self._effective_depth(max_depth)
        budget = node_budget if node_budget is not None else self.node_budget
        if budget < 1:
            raise ValueError(f"node_budget must be >= 1, got {budget}")

        root_affiliate = await self.affiliate_repo.get_by_code(root_code)
        if root_affiliate is None:
            return None

        root = TreeNode.from_affiliate(root_affiliate, depth=0)
        tree = DownlineTree(root=root, max_depth=max_depth, node_count=1)
        placed = {root.code}
        frontier = [root]
        depth = 0

        while frontier and depth < max_depth:
            if deadline_passed(deadline):
                self._truncate(tree, TruncationReason.DEADLINE)
                break

            children_by_sponsor = await self._fetch_children(
                [node.code for node in frontier]
            )

            next_frontier: list[TreeNode] = []
            for parent in frontier:
                for child in children_by_sponsor.get(parent.code, []):
                    if child.code in placed:
                        logger.warning(
                            "Affiliate reached twice in downline walk, skipped",
                            extra={
                                "root_code": root_code,
                                "code": child.code,
                                "parent_code": parent.code,
                            },
                        )
                        continue

                    if tree.node_count >= budget:
                        self._truncate(tree, TruncationReason.NODE_BUDGET)
                        break

                    node = TreeNode.from_affiliate(child, depth=depth + 1)
                    parent.children.append(node)
                    placed.add(node.code)
                    tree.node_count += 1
                    next_frontier.append(node)

                if tree.truncated:
                    break

            if tree.truncated:
                break

            frontier = next_frontier
            depth += 1

        logger.debug(
            "Downline tree built",
            extra={
                "root_code": root_code,
                "max_depth": max_depth,
                "node_count": tree.node_count,
                "truncated": tree.truncated,
            },
        )

        return tree

    def _effective_depth(self, max_depth: int | None) -> int:
        """Apply the default and the configured ceiling."""
        if max_depth is None:
            return settings.downline_max_depth
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if max_depth > settings.downline_max_depth:
            logger.warning(
                "Requested downline depth clamped",
                extra={
                    "requested": max_depth,
                    "allowed": settings.downline_max_depth,
                },
            )
            return settings.downline_max_depth
        return max_depth

    def _truncate(self, tree: DownlineTree, reason: str) -> None:
        """Flag a tree as partial."""
        tree.truncated = True
        tree.truncation_reason = reason
        logger.info(
            "Downline tree truncated",
            extra={
                "root_code": tree.root.code,
                "reason": reason,
                "node_count": tree.node_count,
            },
        )

    async def _fetch_children(
        self, sponsor_codes: Sequence[str]
    ) -> dict[str, list[Affiliate]]:
        """
        Direct referrals of every sponsor code, grouped by sponsor.

        Each group keeps the (created_at, code) order of the query.
        """
        batches = [
            list(sponsor_codes[i:i + self.batch_size])
            for i in range(0, len(sponsor_codes), self.batch_size)
        ]

        if self.session_maker is None or len(batches) == 1:
            results = [
                await self.affiliate_repo.get_direct_referrals_for_many(batch)
                for batch in batches
            ]
        else:
            semaphore = asyncio.Semaphore(self.max_workers)

            async def fetch(batch: list[str]) -> list[Affiliate]:
                async with semaphore:
                    async with self.session_maker() as session:
                        repo = AffiliateRepository(session)
                        return await repo.get_direct_referrals_for_many(batch)

            results = await asyncio.gather(*(fetch(batch) for batch in batches))

        grouped: dict[str, list[Affiliate]] = {}
        for rows in results:
            for affiliate in rows:
                grouped.setdefault(affiliate.sponsor_code, []).append(affiliate)
        return grouped
