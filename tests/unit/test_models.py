"""Unit tests for model helpers."""

from datetime import datetime, timezone
from decimal import Decimal

from app.models import Affiliate, Commission, CommissionStatus


class TestAffiliateModel:
    """Tests for Affiliate serialization."""

    def test_to_dict(self):
        affiliate = Affiliate(
            code="SPONSOR",
            sponsor_code="TOP",
            balance_pending=Decimal("20.00"),
            balance_available=Decimal("5.50"),
            total_earnings=Decimal("5.50"),
            direct_referral_count=3,
            downline_count=7,
        )

        assert affiliate.to_dict() == {
            "code": "SPONSOR",
            "sponsorCode": "TOP",
            "balancePending": "20.00",
            "balanceAvailable": "5.50",
            "totalEarnings": "5.50",
            "directReferralCount": 3,
            "downlineCount": 7,
        }


class TestCommissionModel:
    """Tests for Commission helpers."""

    def _commission(self, status: str) -> Commission:
        return Commission(
            order_id="ORD-1",
            beneficiary_code="SPONSOR",
            level=1,
            rate=Decimal("20"),
            amount=Decimal("20.00"),
            status=status,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

    def test_pending(self):
        assert self._commission(CommissionStatus.PENDING.value).is_pending
        assert not self._commission(CommissionStatus.PAID.value).is_pending

    def test_to_dict(self):
        data = self._commission(CommissionStatus.PENDING.value).to_dict()

        assert data == {
            "orderId": "ORD-1",
            "beneficiaryCode": "SPONSOR",
            "level": 1,
            "amount": "20.00",
            "status": "pending",
            "createdAt": "2026-01-01T00:00:00+00:00",
        }
