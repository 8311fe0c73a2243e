from datetime import date, datetime

import pytest

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.stages.sale_date import SaleDateValidator
from sales_robot.application.transformers import DateFormat
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed


@pytest.fixture
def validator():
    return SaleDateValidator(DateFormat.DMY)


class TestSaleDateInPeriod:
    @pytest.mark.parametrize("value", ["01/01/2025", "15/01/2025", "31/01/2025"])
    def test_inside_period_including_boundaries(self, validator, make_view, make_row, mapping, value):
        result = validator.validate(make_view(), [make_row(sale_date=value)], mapping)
        assert isinstance(result, StagePassed)

    def test_returns_local_midnight(self, validator, make_view, make_row, mapping):
        result = validator.validate(make_view(), [make_row(sale_date="15/01/2025")], mapping)
        assert result.value.date() == date(2025, 1, 15)
        assert result.value.hour == 0
        assert result.value.tzinfo is not None

    def test_excel_datetime_cell(self, validator, make_view, make_row, mapping):
        row = make_row(sale_date=datetime(2025, 1, 20, 16, 30))
        assert validator.validate(make_view(), [row], mapping).value.date() == date(2025, 1, 20)

    def test_us_format_configured(self, make_view, make_row, mapping):
        validator = SaleDateValidator(DateFormat.MDY)
        result = validator.validate(make_view(), [make_row(sale_date="01/20/2025")], mapping)
        assert result.value.date() == date(2025, 1, 20)


class TestSaleDateFailures:
    def test_day_before_start(self, validator, make_view, make_row, mapping):
        result = validator.validate(make_view(), [make_row(sale_date="31/12/2024")], mapping)
        assert isinstance(result, StageFailed)
        assert result.kind is FailureKind.DATE_OUT_OF_RANGE
        assert result.context["direction"] == "BEFORE"
        assert result.context["sale_date"] == "31/12/2024"
        assert result.context["start_date"] == "01/01/2025"

    def test_day_after_end(self, validator, make_view, make_row, mapping):
        result = validator.validate(make_view(), [make_row(sale_date="01/02/2025")], mapping)
        assert result.kind is FailureKind.DATE_OUT_OF_RANGE
        assert result.context["direction"] == "AFTER"
        assert result.context["end_date"] == "31/01/2025"

    def test_unmapped_column(self, validator, make_view, make_row):
        mapping = ColumnMapping(columns={"CNPJ_OTICA": "CNPJ"})
        result = validator.validate(make_view(), [make_row()], mapping)
        assert result.kind is FailureKind.DATE_COLUMN_UNMAPPED

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_empty_cell(self, validator, make_view, make_row, mapping, value):
        result = validator.validate(make_view(), [make_row(sale_date=value)], mapping)
        assert result.kind is FailureKind.DATE_EMPTY

    def test_unparseable(self, validator, make_view, make_row, mapping):
        result = validator.validate(make_view(), [make_row(sale_date="31/02/2025")], mapping)
        assert result.kind is FailureKind.DATE_UNPARSEABLE
        assert result.context["raw_value"] == "31/02/2025"
        assert result.context["date_format"] == "DD/MM/YYYY"

    def test_wrong_format_for_value(self, make_view, make_row, mapping):
        validator = SaleDateValidator(DateFormat.MDY)
        result = validator.validate(make_view(), [make_row(sale_date="20/01/2025")], mapping)
        assert result.kind is FailureKind.DATE_UNPARSEABLE
