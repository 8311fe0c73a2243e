"""Etapa de conflicto: un pedido sólo puede quedar VALIDATED para un vendedor por campaña."""

from typing import Union

import structlog

from sales_robot.application.ports.submission_repository import (
    SubmissionRepository,
    ValidatedClaim,
)
from sales_robot.domain.entities import SubmissionStatus, SubmissionView
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed

logger = structlog.get_logger()


class ConflictDetector:
    """
    Consulta el almacenamiento y, además, los pedidos que esta misma corrida ya
    decidió VALIDATED. Así dos vendedores que reclaman el mismo pedido en un lote
    dan VALIDATED y luego CONFLICT, igual en simulación que en ejecución real.
    """

    def __init__(self, repository: SubmissionRepository) -> None:
        self._repository = repository
        self._batch_claims: dict[tuple[str, str], ValidatedClaim] = {}

    def check(self, view: SubmissionView) -> Union[StagePassed[None], StageFailed]:
        submission = view.submission
        key = (submission.order_number.strip(), submission.campaign_id)

        claim = self._batch_claims.get(key)
        if claim is not None and claim.seller_id == submission.seller_id:
            claim = None
        claimed_in_batch = claim is not None
        if claim is None:
            claim = self._repository.find_validated_by_other_seller(
                submission.order_number, submission.campaign_id, submission.seller_id
            )

        if claim is None:
            return StagePassed(None)

        logger.warning(
            "seller_conflict_detected",
            order_number=submission.order_number,
            other_seller_id=claim.seller_id,
        )
        return StageFailed(
            kind=FailureKind.SELLER_CONFLICT,
            status=SubmissionStatus.CONFLICT,
            context={
                "other_seller_id": claim.seller_id,
                "other_seller_name": claim.seller_name,
                "other_submission_id": claim.submission_id,
                "claimed_in_batch": claimed_in_batch,
            },
        )

    def claim(self, view: SubmissionView) -> None:
        """Registra que este envío quedó decidido VALIDATED en la corrida actual."""
        submission = view.submission
        key = (submission.order_number.strip(), submission.campaign_id)
        self._batch_claims.setdefault(
            key,
            ValidatedClaim(
                submission_id=submission.id,
                seller_id=submission.seller_id,
                seller_name=view.seller.name if view.seller is not None else None,
            ),
        )
