"""Caso de uso principal: concilia los envíos de venta contra la planilha del admin."""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional

import structlog

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.config import ValidationConfig
from sales_robot.application.dtos import BatchReport, BatchRequest, OutcomeDetail
from sales_robot.application.messages import build_messages
from sales_robot.application.ports.history_repository import HistoryRepository
from sales_robot.application.ports.reward_engine import RewardEngine
from sales_robot.application.ports.submission_repository import SubmissionRepository
from sales_robot.application.record_locator import locate_order_rows
from sales_robot.application.stages.cnpj import CnpjValidator
from sales_robot.application.stages.conflict import ConflictDetector
from sales_robot.application.stages.row_consistency import check_rows_consistent
from sales_robot.application.stages.rules import RuleEvaluator
from sales_robot.application.stages.sale_date import SaleDateValidator
from sales_robot.application.transformers import DateFormat
from sales_robot.application.use_cases.persist_outcomes import OutcomePersister
from sales_robot.domain.entities import (
    HistoryRecord,
    SubmissionStatus,
    SubmissionView,
    ValidationOutcome,
)
from sales_robot.domain.exceptions import BatchFetchError
from sales_robot.domain.outcomes import KeptPending, StageFailed

logger = structlog.get_logger()

MESSAGE_NOTHING_PENDING = "Nenhum envio pendente de validação encontrado para esta campanha."
MESSAGE_SIMULATION = "Simulação concluída. Nenhuma alteração foi persistida."
MESSAGE_SUCCESS = "Processamento concluído com sucesso."
MESSAGE_INTERRUPTED = "Processamento interrompido. Os envios restantes não foram alterados."
MESSAGE_PARTIAL = "Processamento concluído com {errors} erro(s) de persistência."


class CascadeState(Enum):
    LOCATING = "LOCATING"
    CNPJ = "CNPJ"
    DATE = "DATE"
    RULES = "RULES"
    CONFLICT = "CONFLICT"
    DECIDED = "DECIDED"
    KEPT_PENDING = "KEPT_PENDING"


@dataclass
class Decision:
    """
    Resultado de la cascada para un envío. `outcome` None = sigue pendiente.

    `claim_holder_id` es el envío de esta misma corrida cuyo VALIDATED provocó
    el CONFLICT; sólo vale si ese envío llega a persistirse.
    """

    view: SubmissionView
    outcome: Optional[ValidationOutcome]
    trace: list[CascadeState] = field(default_factory=list)
    claim_holder_id: Optional[str] = None

    @property
    def kept_pending(self) -> bool:
        return self.outcome is None


class ValidationCascade:
    """
    LOCATING → CNPJ → DATE → RULES → CONFLICT → DECIDED.

    Cualquier etapa puede terminar en DECIDED con un resultado terminal; si el
    pedido no está en la planilha termina en KEPT_PENDING. No escribe nada: la
    misma cascada sirve para simular y para ejecutar.
    """

    def __init__(
        self,
        mapping: ColumnMapping,
        rows: list[dict[str, Any]],
        conflict_detector: ConflictDetector,
        sale_date_validator: SaleDateValidator,
        pair_rows_policy: str = "FIRST_ROW",
        cnpj_validator: Optional[CnpjValidator] = None,
        rule_evaluator: Optional[RuleEvaluator] = None,
    ) -> None:
        self._mapping = mapping
        self._rows = rows
        self._conflicts = conflict_detector
        self._sale_date = sale_date_validator
        self._pair_rows_policy = pair_rows_policy
        self._cnpj = cnpj_validator or CnpjValidator()
        self._rules = rule_evaluator or RuleEvaluator()

    def decide(self, view: SubmissionView) -> Decision:
        submission = view.submission
        decision = Decision(view=view, outcome=None, trace=[CascadeState.LOCATING])

        column = self._mapping.resolve_order_column(view.campaign.order_type)
        if isinstance(column, StageFailed):
            return self._terminate(decision, column)

        located = locate_order_rows(submission.order_number, self._rows, column.value)
        if isinstance(located, KeptPending):
            logger.info("submission_kept_pending", submission_id=submission.id, reason=located.reason)
            decision.trace.append(CascadeState.KEPT_PENDING)
            return decision
        rows = located.value

        decision.trace.append(CascadeState.CNPJ)
        if self._pair_rows_policy == "CONSISTENT":
            consistency = check_rows_consistent(rows, self._mapping)
            if isinstance(consistency, StageFailed):
                return self._terminate(decision, consistency)
        cnpj = self._cnpj.validate(view, rows, self._mapping)
        if isinstance(cnpj, StageFailed):
            return self._terminate(decision, cnpj)

        decision.trace.append(CascadeState.DATE)
        sale_date = self._sale_date.validate(view, rows, self._mapping)
        if isinstance(sale_date, StageFailed):
            return self._terminate(decision, sale_date)

        decision.trace.append(CascadeState.RULES)
        rules = self._rules.evaluate(view, rows, self._mapping)
        if isinstance(rules, StageFailed):
            return self._terminate(decision, rules)
        payout = self._rules.resolve_payout(view, rows, self._mapping)
        if isinstance(payout, StageFailed):
            return self._terminate(decision, payout)

        decision.trace.append(CascadeState.CONFLICT)
        conflict = self._conflicts.check(view)
        if isinstance(conflict, StageFailed):
            return self._terminate(decision, conflict)
        self._conflicts.claim(view)

        decision.trace.append(CascadeState.DECIDED)
        decision.outcome = ValidationOutcome(
            status=SubmissionStatus.VALIDATED,
            product_code=payout.value.product_code,
            payout_value=payout.value.amount,
            sale_date=sale_date.value,
        )
        logger.info(
            "submission_decided_validated",
            submission_id=submission.id,
            order_number=submission.order_number,
            product_code=payout.value.product_code,
        )
        return decision

    def _terminate(self, decision: Decision, failure: StageFailed) -> Decision:
        view = decision.view
        context = {
            "campaign_title": view.campaign.title,
            "campaign_id": view.campaign.id,
            "order_number": view.submission.order_number,
            "seller_id": view.submission.seller_id,
            "requirement_id": view.requirement.id,
            "submission_id": view.submission.id,
            **failure.context,
        }
        messages = build_messages(failure.kind, context)
        decision.trace.append(CascadeState.DECIDED)
        if failure.context.get("claimed_in_batch"):
            decision.claim_holder_id = failure.context["other_submission_id"]
        decision.outcome = ValidationOutcome(
            status=failure.status,
            technical_message=messages.technical,
            counterparty_message=messages.counterparty,
            failure_kind=failure.kind.value,
        )
        log = logger.error if failure.kind.name.endswith("UNMAPPED") else logger.warning
        log(
            "submission_decided_failed",
            submission_id=view.submission.id,
            order_number=view.submission.order_number,
            status=failure.status.value,
            kind=failure.kind.value,
            stage=decision.trace[-2].value,
        )
        return decision


def _detail_for(decision: Decision) -> OutcomeDetail:
    view = decision.view
    outcome = decision.outcome
    seller = view.seller
    optics = seller.optics if seller is not None else None
    return OutcomeDetail(
        submission_id=view.submission.id,
        order_number=view.submission.order_number,
        status=outcome.status.value,
        previous_status=view.submission.status.value,
        technical_message=outcome.technical_message,
        counterparty_message=outcome.counterparty_message,
        failure_kind=outcome.failure_kind,
        seller_summary=f"{seller.name} <{seller.email}>" if seller is not None else None,
        optics_summary=f"{optics.name} ({optics.tax_id or 'sem CNPJ'})" if optics is not None else None,
        campaign_summary=view.campaign.title,
        requirement_summary=view.requirement.description,
        resolved_product_code=outcome.product_code,
        payout_value=outcome.payout_value,
        sale_date=outcome.sale_date,
        trace=[state.value for state in decision.trace],
    )


@dataclass(frozen=True)
class ReconcileSalesUseCase:
    repository: SubmissionRepository
    history: HistoryRepository
    reward_engine: RewardEngine
    config: ValidationConfig = field(default_factory=ValidationConfig)

    def execute(
        self,
        request: BatchRequest,
        operator_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchReport:
        run_id = str(uuid.uuid4())
        report = BatchReport(
            run_id=run_id,
            campaign_selector=request.campaign_selector,
            simulate=request.simulate,
        )
        structlog.contextvars.bind_contextvars(run_id=run_id, simulate=request.simulate)
        try:
            logger.info(
                "reconciliation_started",
                campaign_selector=request.campaign_selector,
                rows=len(request.rows),
                operator_id=operator_id,
            )
            views = self._fetch(request.campaign_selector)
            report.total_processed = len(views)
            if not views:
                report.message = MESSAGE_NOTHING_PENDING
                logger.info("reconciliation_nothing_pending")
                return report

            cascade = self._build_cascade(request)
            decisions = [cascade.decide(view) for view in views]

            if request.simulate:
                self._tally_simulation(report, decisions)
                report.message = MESSAGE_SIMULATION
            else:
                self._persist_all(report, decisions, cancel_event)
                self._save_history(report, operator_id)

            logger.info(
                "reconciliation_finished",
                total=report.total_processed,
                validated=report.validated,
                rejected=report.rejected,
                conflict=report.conflict,
                kept_pending=report.kept_pending,
                revalidated=report.revalidated,
                persistence_errors=report.persistence_errors,
            )
            return report
        finally:
            structlog.contextvars.unbind_contextvars("run_id", "simulate")

    def _fetch(self, campaign_selector: str) -> list[SubmissionView]:
        try:
            return self.repository.fetch_reconcilable(campaign_selector)
        except Exception as e:
            logger.error("batch_fetch_failed", campaign_selector=campaign_selector, error=str(e))
            raise BatchFetchError(campaign_selector, str(e)) from e

    def _build_cascade(self, request: BatchRequest) -> ValidationCascade:
        date_format = request.date_format or DateFormat[self.config.default_date_format]
        mapping = ColumnMapping(
            columns=dict(request.column_mapping),
            order_type_fields=dict(self.config.order_type_fields),
        )
        return ValidationCascade(
            mapping=mapping,
            rows=request.rows,
            conflict_detector=ConflictDetector(self.repository),
            sale_date_validator=SaleDateValidator(date_format, self.config.timezone),
            pair_rows_policy=self.config.pair_rows_policy,
        )

    def _tally_simulation(self, report: BatchReport, decisions: list[Decision]) -> None:
        for decision in decisions:
            if decision.kept_pending:
                report.kept_pending += 1
                continue
            detail = _detail_for(decision)
            self._count(report, decision, detail)

    def _persist_all(
        self,
        report: BatchReport,
        decisions: list[Decision],
        cancel_event: Optional[threading.Event],
    ) -> None:
        persister = OutcomePersister(self.repository, self.reward_engine)
        committed: set[str] = set()

        for decision in decisions:
            if decision.kept_pending:
                report.kept_pending += 1
                continue

            if cancel_event is not None and cancel_event.is_set():
                if not report.interrupted:
                    logger.warning("reconciliation_cancelled")
                report.interrupted = True
                continue

            if decision.claim_holder_id is not None and decision.claim_holder_id not in committed:
                logger.warning(
                    "conflict_holder_not_persisted",
                    submission_id=decision.view.submission.id,
                    holder_submission_id=decision.claim_holder_id,
                )
                report.kept_pending += 1
                continue

            detail = _detail_for(decision)
            try:
                detail.slot_number = persister.persist(decision.view, decision.outcome)
                detail.persisted = True
                if decision.outcome.is_validated:
                    committed.add(decision.view.submission.id)
            except Exception as e:
                logger.error(
                    "persistence_failed",
                    submission_id=decision.view.submission.id,
                    status=decision.outcome.status.value,
                    error=str(e),
                )
                report.persistence_errors += 1
                detail.status = detail.previous_status
                detail.slot_number = None
                detail.technical_message = f"Erro ao persistir o resultado: {e}"
                detail.counterparty_message = decision.view.submission.counterparty_message
                report.details.append(detail)
                continue

            self._count(report, decision, detail)

        if report.interrupted:
            report.message = MESSAGE_INTERRUPTED
        elif report.persistence_errors:
            report.message = MESSAGE_PARTIAL.format(errors=report.persistence_errors)
        else:
            report.message = MESSAGE_SUCCESS

    def _count(self, report: BatchReport, decision: Decision, detail: OutcomeDetail) -> None:
        report.details.append(detail)
        report.count(detail.status)
        previous = decision.view.submission.status
        if decision.outcome.is_validated and previous in (
            SubmissionStatus.REJECTED,
            SubmissionStatus.CONFLICT,
        ):
            report.revalidated += 1
            logger.info(
                "submission_revalidated",
                submission_id=decision.view.submission.id,
                previous_status=previous.value,
            )

    def _save_history(self, report: BatchReport, operator_id: Optional[str]) -> None:
        record = HistoryRecord(
            id=report.run_id,
            run_at=datetime.now(UTC),
            campaign_selector=report.campaign_selector,
            operator_id=operator_id,
            total_processed=report.total_processed,
            validated=report.validated,
            rejected=report.rejected,
            conflict=report.conflict,
            kept_pending=report.kept_pending,
            revalidated=report.revalidated,
            details=[d.to_dict() for d in report.details],
        )
        try:
            self.history.save(record)
        except Exception as e:
            logger.error("history_save_failed", run_id=report.run_id, error=str(e))
