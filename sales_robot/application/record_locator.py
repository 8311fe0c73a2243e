"""Localización de las filas de un pedido dentro de la planilha."""

from collections.abc import Sequence
from typing import Any, Union

from sales_robot.application.transformers import cell_text
from sales_robot.domain.outcomes import KeptPending, StagePassed

Row = dict[str, Any]


def locate_order_rows(
    order_number: str, rows: Sequence[Row], column: str
) -> Union[StagePassed[list[Row]], KeptPending]:
    """
    Todas las filas cuyo valor en `column` (sin espacios) es igual a `order_number`.

    La comparación es de texto exacto: "0100" y "100" son pedidos distintos.
    Un pedido ausente no es un error, sólo queda pendiente para otra planilha.
    """
    target = order_number.strip()
    matched = [row for row in rows if cell_text(row.get(column)) == target]
    if not matched:
        return KeptPending(reason=f"pedido {target} no encontrado en la columna '{column}'")
    return StagePassed(matched)
