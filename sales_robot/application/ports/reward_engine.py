from typing import Protocol

from sales_robot.application.ports.submission_repository import SubmissionTransaction
from sales_robot.domain.entities import Campaign, Seller, Submission


class RewardEngine(Protocol):
    def process_triggers(
        self,
        tx: SubmissionTransaction,
        submission: Submission,
        campaign: Campaign,
        seller: Seller,
    ) -> None:
        """Corre dentro de la transacción del envío. Un error revierte también el VALIDATED."""
        ...
