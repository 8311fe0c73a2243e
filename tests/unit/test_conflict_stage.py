from unittest.mock import MagicMock

import pytest

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.ports.submission_repository import ValidatedClaim
from sales_robot.application.stages.conflict import ConflictDetector
from sales_robot.application.stages.row_consistency import check_rows_consistent
from sales_robot.domain.entities import SubmissionStatus
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.find_validated_by_other_seller.return_value = None
    return repo


class TestConflictDetector:
    def test_no_claim_passes(self, repository, make_view):
        detector = ConflictDetector(repository)
        assert detector.check(make_view()) == StagePassed(None)
        repository.find_validated_by_other_seller.assert_called_once_with("1001", "camp-1", "seller-1")

    def test_stored_claim_by_other_seller_is_conflict(self, repository, make_view):
        repository.find_validated_by_other_seller.return_value = ValidatedClaim(
            submission_id="sub-9", seller_id="seller-9", seller_name="Bruno"
        )
        result = ConflictDetector(repository).check(make_view())
        assert isinstance(result, StageFailed)
        assert result.kind is FailureKind.SELLER_CONFLICT
        assert result.status is SubmissionStatus.CONFLICT
        assert result.context == {
            "other_seller_id": "seller-9",
            "other_seller_name": "Bruno",
            "other_submission_id": "sub-9",
            "claimed_in_batch": False,
        }

    def test_batch_claim_by_other_seller_is_conflict(self, repository, make_view, make_seller):
        detector = ConflictDetector(repository)
        first = make_view(submission_id="sub-1")
        detector.claim(first)

        second = make_view(submission_id="sub-2", seller=make_seller(id="seller-2", name="Carla"))
        result = detector.check(second)
        assert result.kind is FailureKind.SELLER_CONFLICT
        assert result.context["other_submission_id"] == "sub-1"
        assert result.context["claimed_in_batch"] is True
        repository.find_validated_by_other_seller.assert_not_called()

    def test_batch_claim_by_same_seller_falls_back_to_store(self, repository, make_view):
        detector = ConflictDetector(repository)
        detector.claim(make_view(submission_id="sub-1"))
        result = detector.check(make_view(submission_id="sub-2"))
        assert isinstance(result, StagePassed)
        repository.find_validated_by_other_seller.assert_called_once()

    def test_batch_claim_is_per_campaign(self, repository, make_view, make_seller, make_campaign):
        detector = ConflictDetector(repository)
        detector.claim(make_view())
        other = make_view(
            submission_id="sub-2",
            seller=make_seller(id="seller-2"),
            campaign=make_campaign(id="camp-2"),
        )
        assert isinstance(detector.check(other), StagePassed)

    def test_first_claim_wins(self, repository, make_view, make_seller):
        detector = ConflictDetector(repository)
        detector.claim(make_view(submission_id="sub-1"))
        detector.claim(make_view(submission_id="sub-2", seller=make_seller(id="seller-2")))
        result = detector.check(make_view(submission_id="sub-3", seller=make_seller(id="seller-3")))
        assert result.context["other_submission_id"] == "sub-1"


class TestRowsConsistency:
    def test_single_row_always_consistent(self, make_row, mapping):
        assert isinstance(check_rows_consistent([make_row()], mapping), StagePassed)

    def test_same_cnpj_different_punctuation(self, make_row, mapping):
        rows = [make_row(cnpj="12.345.678/0001-90"), make_row(cnpj="12345678000190")]
        assert isinstance(check_rows_consistent(rows, mapping), StagePassed)

    def test_divergent_cnpj(self, make_row, mapping):
        rows = [make_row(), make_row(cnpj="11.111.111/0001-11")]
        result = check_rows_consistent(rows, mapping)
        assert result.kind is FailureKind.PAIR_ROWS_INCONSISTENT
        assert result.context["field"] == "CNPJ_OTICA"

    def test_divergent_date(self, make_row, mapping):
        rows = [make_row(sale_date="15/01/2025"), make_row(sale_date="16/01/2025")]
        result = check_rows_consistent(rows, mapping)
        assert result.context == {"field": "DATA_VENDA", "values": ["15/01/2025", "16/01/2025"]}

    def test_unmapped_columns_skipped(self, make_row):
        rows = [make_row(), make_row(cnpj="11.111.111/0001-11")]
        mapping = ColumnMapping(columns={"NUMERO_PEDIDO_OS": "Pedido"})
        assert isinstance(check_rows_consistent(rows, mapping), StagePassed)
