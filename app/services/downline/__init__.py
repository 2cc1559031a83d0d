"""
Downline services package.

Read-only rendering of the referral graph below an affiliate.
"""

from app.services.downline.report import DownlineReportService
from app.services.downline.tree_builder import (
    DownlineTree,
    DownlineTreeBuilder,
    TreeNode,
    TruncationReason,
)


__all__ = [
    "DownlineReportService",
    "DownlineTree",
    "DownlineTreeBuilder",
    "TreeNode",
    "TruncationReason",
]
