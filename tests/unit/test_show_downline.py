"""Unit tests for the show_downline script."""

from unittest.mock import AsyncMock, patch

from scripts import show_downline


class TestShowDownlineCli:
    """Tests for argument parsing and exit codes."""

    def test_depth_optional(self):
        args = show_downline.parse_args(["ROOT"])

        assert args.code == "ROOT"
        assert args.depth is None

    def test_depth_parsed(self):
        args = show_downline.parse_args(["ROOT", "--depth", "2"])

        assert args.depth == 2

    def test_invalid_request_exit_code(self):
        with patch.object(
            show_downline,
            "show_downline",
            AsyncMock(side_effect=ValueError("maxDepth must be <= 5")),
        ):
            assert show_downline.main(["ROOT", "--depth", "99"]) == 2
