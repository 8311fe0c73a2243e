"""Etapa de fecha: la venta debe caer dentro de la vigencia de la campaña."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Union

import structlog

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.transformers import (
    REFERENCE_TIMEZONE,
    DateFormat,
    cell_text,
    format_date_for_display,
    is_within_campaign_period,
    parse_date_with_format,
)
from sales_robot.domain.entities import LogicalField, SubmissionView
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed

logger = structlog.get_logger()


class SaleDateValidator:
    def __init__(
        self,
        date_format: DateFormat = DateFormat.DMY,
        timezone: str = REFERENCE_TIMEZONE,
    ) -> None:
        self._date_format = date_format
        self._timezone = timezone

    @property
    def date_format(self) -> DateFormat:
        return self._date_format

    def validate(
        self,
        view: SubmissionView,
        rows: Sequence[dict[str, Any]],
        mapping: ColumnMapping,
    ) -> Union[StagePassed[datetime], StageFailed]:
        """Retorna la fecha de venta parseada (medianoche local) si está en el período."""
        column = mapping.column_for(LogicalField.SALE_DATE)
        if column is None:
            return StageFailed(kind=FailureKind.DATE_COLUMN_UNMAPPED)

        raw = rows[0].get(column)
        if not cell_text(raw):
            return StageFailed(kind=FailureKind.DATE_EMPTY, context={"column": column})

        sale_date = parse_date_with_format(raw, self._date_format, self._timezone)
        if sale_date is None:
            return StageFailed(
                kind=FailureKind.DATE_UNPARSEABLE,
                context={
                    "column": column,
                    "raw_value": cell_text(raw),
                    "date_format": self._date_format.value,
                },
            )

        campaign = view.campaign
        if not is_within_campaign_period(sale_date, campaign.start_date, campaign.end_date):
            direction = "BEFORE" if sale_date.date() < campaign.start_date else "AFTER"
            return StageFailed(
                kind=FailureKind.DATE_OUT_OF_RANGE,
                context={
                    "sale_date": format_date_for_display(sale_date),
                    "start_date": format_date_for_display(campaign.start_date),
                    "end_date": format_date_for_display(campaign.end_date),
                    "direction": direction,
                },
            )

        logger.debug("sale_date_in_period", sale_date=sale_date.date().isoformat())
        return StagePassed(sale_date)
