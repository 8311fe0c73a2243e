from decimal import Decimal

import pytest

from sales_robot.domain.value_objects import (
    Payout,
    SpilloverPool,
    is_full_cnpj,
    normalize_tax_id,
)


class TestNormalizeTaxId:
    def test_strips_punctuation(self):
        assert normalize_tax_id("12.345.678/0001-90") == "12345678000190"

    def test_already_clean(self):
        assert normalize_tax_id("12345678000190") == "12345678000190"

    def test_integer_cell(self):
        assert normalize_tax_id(12345678000190) == "12345678000190"

    def test_empty_or_no_digits_is_none(self):
        assert normalize_tax_id(None) is None
        assert normalize_tax_id("") is None
        assert normalize_tax_id("n/a") is None

    def test_full_cnpj_length(self):
        assert is_full_cnpj("12345678000190")
        assert not is_full_cnpj("1234567800019")
        assert not is_full_cnpj(None)


class TestPayout:
    def test_coerces_to_decimal(self):
        payout = Payout(product_code="LENTE-A", amount="50.10")
        assert payout.amount == Decimal("50.10")

    def test_rejects_negative(self):
        with pytest.raises(ValueError, match="negativo"):
            Payout(product_code="LENTE-A", amount=Decimal("-1"))

    def test_rejects_garbage(self):
        with pytest.raises(ValueError, match="Valor inválido"):
            Payout(product_code="LENTE-A", amount="abc")


class TestSpilloverPool:
    @pytest.fixture
    def pool(self):
        return SpilloverPool(seller_id="seller-1", campaign_id="camp-1", order_key=1)

    def test_quantity_two_fills_slots_in_order(self, pool):
        slots = [pool.slot_for(prior, 2) for prior in range(4)]
        assert slots == [1, 1, 2, 2]

    def test_quantity_one_each_sale_new_slot(self, pool):
        assert [pool.slot_for(prior, 1) for prior in range(3)] == [1, 2, 3]

    def test_rejects_invalid_quantity(self, pool):
        with pytest.raises(ValueError, match="quantity"):
            pool.slot_for(0, 0)

    def test_rejects_negative_prior(self, pool):
        with pytest.raises(ValueError, match="prior_validated"):
            pool.slot_for(-1, 2)
