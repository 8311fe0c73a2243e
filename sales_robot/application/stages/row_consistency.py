"""Política CONSISTENT: las filas de un mismo pedido deben coincidir en CNPJ y fecha."""

from collections.abc import Sequence
from typing import Any, Union

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.transformers import cell_text
from sales_robot.domain.entities import LogicalField
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed
from sales_robot.domain.value_objects import normalize_tax_id


def check_rows_consistent(
    rows: Sequence[dict[str, Any]], mapping: ColumnMapping
) -> Union[StagePassed[int], StageFailed]:
    """Con más de una fila, el CNPJ normalizado y la celda de fecha deben ser idénticos."""
    if len(rows) < 2:
        return StagePassed(len(rows))

    checks = (
        (LogicalField.TAX_ID, lambda value: normalize_tax_id(value) or ""),
        (LogicalField.SALE_DATE, cell_text),
    )
    for logical_field, normalize in checks:
        column = mapping.column_for(logical_field)
        if column is None:
            # Columna sin mapear: la etapa correspondiente lo reporta después
            continue
        values = [normalize(row.get(column)) for row in rows]
        if len(set(values)) > 1:
            return StageFailed(
                kind=FailureKind.PAIR_ROWS_INCONSISTENT,
                context={"field": logical_field, "values": values},
            )
    return StagePassed(len(rows))
