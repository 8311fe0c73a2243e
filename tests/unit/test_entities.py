from datetime import date
from decimal import Decimal

import pytest

from sales_robot.domain.entities import (
    Campaign,
    ProductCatalogEntry,
    Requirement,
    Submission,
    SubmissionStatus,
    UnitType,
    ValidationOutcome,
)


def _make_submission(**overrides) -> Submission:
    defaults = {
        "id": "sub-1",
        "order_number": "1001",
        "seller_id": "seller-1",
        "requirement_id": "req-1",
        "campaign_id": "camp-1",
    }
    defaults.update(overrides)
    return Submission(**defaults)


class TestCampaign:
    def test_rejects_end_before_start(self):
        with pytest.raises(ValueError, match="no puede ser anterior"):
            Campaign(
                id="c",
                title="X",
                start_date=date(2025, 2, 1),
                end_date=date(2025, 1, 1),
            )

    def test_single_day_campaign_allowed(self):
        campaign = Campaign(id="c", title="X", start_date=date(2025, 1, 1), end_date=date(2025, 1, 1))
        assert campaign.start_date == campaign.end_date

    def test_find_product_exact_code(self):
        campaign = Campaign(
            id="c",
            title="X",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 31),
            catalog=(ProductCatalogEntry(code="LENTE-A", payout_value=Decimal("10")),),
        )
        assert campaign.find_product("LENTE-A").payout_value == Decimal("10")
        assert campaign.find_product("LENTE-Z") is None

    def test_default_order_type(self):
        campaign = Campaign(id="c", title="X", start_date=date(2025, 1, 1), end_date=date(2025, 1, 2))
        assert campaign.order_type == "OS_OP_EPS"


class TestRequirement:
    def test_rejects_zero_quantity(self):
        with pytest.raises(ValueError, match="quantity"):
            Requirement(
                id="r",
                campaign_id="c",
                description="d",
                quantity=0,
                unit_type=UnitType.UNIT,
                order_key=1,
            )

    def test_expected_rows_by_unit_type(self):
        assert UnitType.PAIR.expected_rows == 2
        assert UnitType.UNIT.expected_rows == 1


class TestSubmission:
    def test_rejects_blank_order_number(self):
        with pytest.raises(ValueError, match="order_number"):
            _make_submission(order_number="   ")

    @pytest.mark.parametrize(
        "status,expected",
        [
            (SubmissionStatus.PENDING, True),
            (SubmissionStatus.REJECTED, True),
            (SubmissionStatus.CONFLICT, True),
            (SubmissionStatus.VALIDATED, False),
        ],
    )
    def test_validated_is_never_reconcilable(self, status, expected):
        assert _make_submission(status=status).is_reconcilable is expected


class TestSubmissionView:
    def test_tax_ids_from_seller_optics(self, make_view):
        view = make_view()
        assert view.seller_tax_id == "12.345.678/0001-90"
        assert view.parent_optics.tax_id == "99.888.777/0001-66"

    def test_missing_seller_yields_none(self, make_view):
        view = make_view(with_seller=False)
        assert view.seller_tax_id is None
        assert view.parent_optics is None


class TestValidationOutcome:
    def test_is_validated(self):
        assert ValidationOutcome(status=SubmissionStatus.VALIDATED).is_validated
        assert not ValidationOutcome(status=SubmissionStatus.CONFLICT).is_validated
