"""Integration tests for downline tree building and reports."""

import asyncio

import pytest
from pydantic import ValidationError

from app.config.settings import settings
from app.services.downline.report import DownlineReportService
from app.services.downline.tree_builder import DownlineTreeBuilder, TruncationReason


@pytest.fixture
def make_network(make_affiliate):
    """
    ROOT
    ├── A (joined first)
    │   └── A1
    │       └── A11
    └── B
        ├── B1
        └── B2
    """

    async def _make():
        await make_affiliate("ROOT", order=0)
        await make_affiliate("B", sponsor_code="ROOT", order=2)
        await make_affiliate("A", sponsor_code="ROOT", order=1)
        await make_affiliate("A1", sponsor_code="A", order=3)
        await make_affiliate("B2", sponsor_code="B", order=6)
        await make_affiliate("B1", sponsor_code="B", order=5)
        await make_affiliate("A11", sponsor_code="A1", order=7)

    return _make


def codes_by_depth(tree) -> dict[int, list[str]]:
    result: dict[int, list[str]] = {}
    for node in tree.root.iter_nodes():
        result.setdefault(node.depth, []).append(node.code)
    return result


class TestDownlineTreeBuilder:
    """Tests for DownlineTreeBuilder."""

    @pytest.mark.asyncio
    async def test_depth_two(self, db_session, make_network):
        await make_network()

        tree = await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=2)

        assert codes_by_depth(tree) == {
            0: ["ROOT"],
            1: ["A", "B"],
            2: ["A1", "B1", "B2"],
        }
        assert tree.node_count == 6
        assert not tree.truncated

        a1 = tree.root.children[0].children[0]
        assert a1.code == "A1"
        assert a1.level == 3
        assert a1.children == []

    @pytest.mark.asyncio
    async def test_siblings_in_join_order(self, db_session, make_network):
        """Children are ordered by join time, not insertion order."""
        await make_network()

        tree = await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=5)
        b = tree.root.children[1]

        assert [c.code for c in tree.root.children] == ["A", "B"]
        assert [c.code for c in b.children] == ["B1", "B2"]

    @pytest.mark.asyncio
    async def test_depth_zero_renders_root_only(self, db_session, make_network):
        await make_network()

        tree = await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=0)

        assert tree.node_count == 1
        assert tree.root.children == []

    @pytest.mark.asyncio
    async def test_deterministic_output(self, db_session, make_network):
        await make_network()
        builder = DownlineTreeBuilder(db_session)

        first = await builder.build_tree("ROOT", max_depth=3)
        second = await builder.build_tree("ROOT", max_depth=3)

        assert first.to_dict() == second.to_dict()

    @pytest.mark.asyncio
    async def test_node_budget_truncates(self, db_session, make_network):
        await make_network()

        tree = await DownlineTreeBuilder(db_session).build_tree(
            "ROOT", max_depth=3, node_budget=3
        )

        assert tree.node_count == 3
        assert tree.truncated
        assert tree.truncation_reason == TruncationReason.NODE_BUDGET
        assert codes_by_depth(tree) == {0: ["ROOT"], 1: ["A", "B"]}

    @pytest.mark.asyncio
    async def test_expired_deadline_truncates(self, db_session, make_network):
        await make_network()
        deadline = asyncio.get_running_loop().time() - 1

        tree = await DownlineTreeBuilder(db_session).build_tree(
            "ROOT", max_depth=3, deadline=deadline
        )

        assert tree.node_count == 1
        assert tree.truncation_reason == TruncationReason.DEADLINE

    @pytest.mark.asyncio
    async def test_cycle_does_not_loop(self, db_session, make_affiliate):
        """ROOT and LOOP sponsor each other: each appears once."""
        await make_affiliate("ROOT", sponsor_code="LOOP", order=0)
        await make_affiliate("LOOP", sponsor_code="ROOT", order=1)

        tree = await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=5)

        assert codes_by_depth(tree) == {0: ["ROOT"], 1: ["LOOP"]}
        assert tree.node_count == 2

    @pytest.mark.asyncio
    async def test_unknown_root(self, db_session):
        assert await DownlineTreeBuilder(db_session).build_tree("NOBODY") is None

    @pytest.mark.asyncio
    async def test_depth_clamped(self, db_session, make_network):
        await make_network()

        tree = await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=99)

        assert tree.max_depth == settings.downline_max_depth

    @pytest.mark.asyncio
    async def test_negative_depth_rejected(self, db_session, make_network):
        await make_network()

        with pytest.raises(ValueError):
            await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=-1)

    @pytest.mark.asyncio
    async def test_concurrent_batches_match_sequential(
        self, db_session, session_maker, make_network
    ):
        await make_network()
        sequential = DownlineTreeBuilder(db_session)
        concurrent = DownlineTreeBuilder(
            db_session, session_maker=session_maker, batch_size=1, max_workers=2
        )

        expected = await sequential.build_tree("ROOT", max_depth=3)
        actual = await concurrent.build_tree("ROOT", max_depth=3)

        assert actual.to_dict() == expected.to_dict()
        assert actual.node_count == 7

    @pytest.mark.asyncio
    async def test_node_dict_shape(self, db_session, make_network):
        await make_network()

        tree = await DownlineTreeBuilder(db_session).build_tree("ROOT", max_depth=1)
        data = tree.root.children[0].to_dict()

        assert data["code"] == "A"
        assert data["sponsorCode"] == "ROOT"
        assert data["depth"] == 1
        assert data["level"] == 2
        assert data["children"] == []
        assert data["joinedAt"].startswith("2026-01-01T00:01:00")


class TestDownlineReportService:
    """Tests for the downline reporting query."""

    @pytest.mark.asyncio
    async def test_report(self, db_session, make_network):
        await make_network()

        report = await DownlineReportService(db_session).get_downline("ROOT", max_depth=1)

        assert report["success"] is True
        assert report["nodeCount"] == 3
        assert report["truncated"] is False
        assert [c["code"] for c in report["downline"]["children"]] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_unknown_affiliate(self, db_session):
        report = await DownlineReportService(db_session).get_downline("NOBODY")

        assert report["success"] is False
        assert report["error"] == "Affiliate not found"
        assert report["downline"] is None

    @pytest.mark.asyncio
    async def test_depth_over_limit_rejected(self, db_session, make_network):
        await make_network()

        with pytest.raises(ValidationError):
            await DownlineReportService(db_session).get_downline(
                "ROOT", max_depth=settings.downline_max_depth + 1
            )
