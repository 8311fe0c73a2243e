import pytest

from sales_robot.application.messages import MESSAGE_BUILDERS, NOT_AVAILABLE, build_messages
from sales_robot.domain.outcomes import FailureKind

CONTEXT = {
    "campaign_title": "Campanha Verão",
    "campaign_id": "camp-internal-77",
    "order_number": "1001",
    "seller_id": "seller-internal-42",
    "requirement_id": "req-internal-13",
    "submission_id": "sub-internal-99",
    "other_seller_id": "seller-internal-43",
    "other_submission_id": "sub-internal-98",
}


class TestRegistry:
    def test_every_failure_kind_has_builder(self):
        assert set(MESSAGE_BUILDERS) == set(FailureKind)

    @pytest.mark.parametrize("kind", list(FailureKind))
    def test_technical_message_prefixed_with_campaign(self, kind):
        messages = build_messages(kind, CONTEXT)
        assert messages.technical.startswith("[Campanha Verão] [")
        assert messages.counterparty

    @pytest.mark.parametrize("kind", list(FailureKind))
    def test_counterparty_never_exposes_internal_ids(self, kind):
        counterparty = build_messages(kind, CONTEXT).counterparty
        for key in ("campaign_id", "seller_id", "requirement_id", "submission_id", "other_seller_id"):
            assert CONTEXT[key] not in counterparty

    def test_none_kind_uses_generic_message(self):
        messages = build_messages(None, {"detail": "boom"})
        assert "Erro não categorizado: boom" in messages.technical
        assert messages.technical.startswith(f"[{NOT_AVAILABLE}]")


class TestMessageContents:
    def test_missing_values_render_as_not_available(self):
        messages = build_messages(FailureKind.ID_MISMATCH, {"campaign_title": "C"})
        assert f"({NOT_AVAILABLE})" in messages.technical

    def test_out_of_range_before(self):
        context = {
            **CONTEXT,
            "sale_date": "31/12/2024",
            "start_date": "01/01/2025",
            "end_date": "31/01/2025",
            "direction": "BEFORE",
        }
        messages = build_messages(FailureKind.DATE_OUT_OF_RANGE, context)
        assert "[VALIDAÇÃO CRÍTICA]" in messages.technical
        assert "ANTES do início" in messages.technical
        assert "31/12/2024" in messages.counterparty

    def test_out_of_range_after(self):
        context = {**CONTEXT, "direction": "AFTER"}
        assert "DEPOIS do fim" in build_messages(FailureKind.DATE_OUT_OF_RANGE, context).technical

    def test_pair_rows_found_one(self):
        messages = build_messages(FailureKind.PAIR_TWO_ROWS_REQUIRED, {**CONTEXT, "found": 1})
        assert "faltam unidades" in messages.technical
        assert "apenas 1 unidade" in messages.counterparty

    def test_pair_rows_found_three(self):
        messages = build_messages(FailureKind.PAIR_TWO_ROWS_REQUIRED, {**CONTEXT, "found": 3})
        assert "duplicado" in messages.technical
        assert "3 unidades" in messages.counterparty

    def test_catalog_conflict_lists_codes(self):
        messages = build_messages(
            FailureKind.RULE_PRODUCT_NOT_IN_CATALOG, {**CONTEXT, "missing_codes": ["LX", "LY"]}
        )
        assert "[CONFLITO_MANUAL]" in messages.technical
        assert "LX, LY" in messages.counterparty

    def test_seller_conflict_names_other_seller(self):
        messages = build_messages(
            FailureKind.SELLER_CONFLICT, {**CONTEXT, "other_seller_name": "Bruno"}
        )
        assert "Bruno" in messages.technical
        assert "Bruno" not in messages.counterparty

    def test_invalid_cnpj_echoes_raw_value(self):
        messages = build_messages(
            FailureKind.ID_INVALID_FORMAT, {**CONTEXT, "raw_value": "12.345", "row_value": "12345"}
        )
        assert "'12.345'" in messages.counterparty
