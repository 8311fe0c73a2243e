"""Etapa CNPJ: el pedido debe pertenecer a la ótica del vendedor o a su matriz."""

from collections.abc import Sequence
from typing import Any, Union

import structlog

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.transformers import cell_text
from sales_robot.domain.entities import LogicalField, SubmissionView
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed
from sales_robot.domain.value_objects import is_full_cnpj, normalize_tax_id

logger = structlog.get_logger()

DIRECT_MATCH = "DIRECT"
PARENT_MATCH = "PARENT"


class CnpjValidator:
    """Compara el CNPJ de la primera fila localizada contra la ótica del vendedor."""

    def validate(
        self,
        view: SubmissionView,
        rows: Sequence[dict[str, Any]],
        mapping: ColumnMapping,
    ) -> Union[StagePassed[str], StageFailed]:
        column = mapping.column_for(LogicalField.TAX_ID)
        if column is None:
            return StageFailed(kind=FailureKind.ID_COLUMN_UNMAPPED)

        seller_tax_id = normalize_tax_id(view.seller_tax_id)
        if seller_tax_id is None:
            return StageFailed(kind=FailureKind.ID_NOT_REGISTERED)

        raw_value = cell_text(rows[0].get(column))
        if not raw_value:
            return StageFailed(kind=FailureKind.ID_NOT_FOUND_IN_ROW, context={"column": column})

        row_value = normalize_tax_id(raw_value)
        if not is_full_cnpj(row_value):
            return StageFailed(
                kind=FailureKind.ID_INVALID_FORMAT,
                context={"column": column, "row_value": row_value or "", "raw_value": raw_value},
            )

        if row_value == seller_tax_id:
            logger.debug("cnpj_direct_match", cnpj=row_value)
            return StagePassed(DIRECT_MATCH)

        parent = view.parent_optics
        parent_tax_id = normalize_tax_id(parent.tax_id) if parent is not None else None
        if parent_tax_id is not None and row_value == parent_tax_id:
            logger.debug("cnpj_parent_match", cnpj=row_value, parent=parent.name)
            return StagePassed(PARENT_MATCH)

        optics = view.seller.optics if view.seller is not None else None
        return StageFailed(
            kind=FailureKind.ID_MISMATCH,
            context={
                "row_value": row_value,
                "seller_tax_id": seller_tax_id,
                "parent_tax_id": parent_tax_id,
                "optics_name": optics.name if optics is not None else None,
                "parent_name": parent.name if parent is not None else None,
            },
        )
