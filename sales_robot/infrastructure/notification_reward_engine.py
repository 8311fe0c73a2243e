"""Motor de recompensas que notifica al vendedor dentro de la transacción del envío."""

import structlog

from sales_robot.application.ports.submission_repository import SubmissionTransaction
from sales_robot.domain.entities import Campaign, Seller, Submission

logger = structlog.get_logger()

APPROVED_TEMPLATE = "Sua venda '{order_number}' foi APROVADA."


class NotificationRewardEngine:
    """
    Registra la notificación de venta aprobada usando la misma transacción que
    la escritura de VALIDATED. Si algo falla acá, el envío no queda validado.
    """

    def process_triggers(
        self,
        tx: SubmissionTransaction,
        submission: Submission,
        campaign: Campaign,
        seller: Seller,
    ) -> None:
        message = APPROVED_TEMPLATE.format(order_number=submission.order_number)
        tx.record_notification(seller.id, submission.id, message)
        logger.info(
            "reward_notification_recorded",
            submission_id=submission.id,
            seller_id=seller.id,
            campaign_id=campaign.id,
            slot=submission.slot_number,
        )
