"""Persistencia de resultados y disparo de recompensas."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from sales_robot.application.ports.reward_engine import RewardEngine
from sales_robot.application.ports.submission_repository import (
    SubmissionRepository,
    SubmissionTransaction,
)
from sales_robot.domain.entities import SubmissionView, ValidationOutcome
from sales_robot.domain.exceptions import DataIntegrityError
from sales_robot.domain.value_objects import SpilloverPool

logger = structlog.get_logger()


class SpilloverAllocator:
    """Cartela de un envío que pasa a VALIDATED, contada dentro de la transacción."""

    def allocate(self, tx: SubmissionTransaction, view: SubmissionView) -> int:
        submission = view.submission
        requirement = view.requirement
        pool = SpilloverPool(
            seller_id=submission.seller_id,
            campaign_id=submission.campaign_id,
            order_key=requirement.order_key,
        )
        prior = tx.count_validated_in_pool(pool)
        slot = pool.slot_for(prior, requirement.quantity)
        logger.info(
            "spillover_slot_computed",
            submission_id=submission.id,
            prior_validated=prior,
            quantity=requirement.quantity,
            slot=slot,
        )
        return slot


@dataclass(frozen=True)
class OutcomePersister:
    repository: SubmissionRepository
    reward_engine: RewardEngine
    allocator: SpilloverAllocator = field(default_factory=SpilloverAllocator)

    def persist(self, view: SubmissionView, outcome: ValidationOutcome) -> int | None:
        """
        Escribe el resultado de un envío. Retorna la cartela si quedó VALIDATED.

        REJECTED y CONFLICT son una actualización simple. VALIDATED corre spillover,
        escritura y recompensas en una sola transacción; cualquier excepción la revierte
        y se propaga al llamador.
        """
        submission = view.submission
        if not outcome.is_validated:
            self.repository.update_status(
                submission.id,
                outcome.status,
                outcome.technical_message,
                outcome.counterparty_message,
            )
            logger.info("submission_status_updated", submission_id=submission.id, status=outcome.status.value)
            return None

        with self.repository.transaction() as tx:
            missing = [
                name
                for name, value in (("seller", view.seller), ("campaign", view.campaign))
                if value is None
            ]
            if missing:
                raise DataIntegrityError(submission.id, missing)

            slot = self.allocator.allocate(tx, view)
            updated = tx.mark_validated(
                submission.id,
                slot_number=slot,
                product_code=outcome.product_code,
                payout_value=outcome.payout_value,
                sale_date=outcome.sale_date,
                validated_at=datetime.now(UTC),
            )
            self.reward_engine.process_triggers(tx, updated, view.campaign, view.seller)

        logger.info("submission_validated", submission_id=submission.id, slot=slot)
        return slot
