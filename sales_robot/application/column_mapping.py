"""Resolución de columnas: campo lógico → encabezado de la planilha."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from sales_robot.domain.entities import DEFAULT_ORDER_TYPE, DEFAULT_ORDER_TYPE_FIELDS
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed


@dataclass(frozen=True)
class ColumnMapping:
    """Mapeo campo lógico → nombre de columna, provisto por el admin."""

    columns: dict[str, str]
    order_type_fields: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ORDER_TYPE_FIELDS))

    @classmethod
    def from_header_mapping(
        cls, header_to_field: dict[str, str], order_type_fields: Optional[dict[str, str]] = None
    ) -> "ColumnMapping":
        """Invierte un mapeo encabezado → campo (el que guarda la pantalla de upload)."""
        inverted = {logical: header for header, logical in header_to_field.items() if logical}
        if order_type_fields is None:
            return cls(columns=inverted)
        return cls(columns=inverted, order_type_fields=dict(order_type_fields))

    def column_for(self, logical_field: str) -> Optional[str]:
        """Nombre de la columna mapeada o None si el admin no la mapeó."""
        column = self.columns.get(logical_field)
        if column is None or not str(column).strip():
            return None
        return column

    def resolve_order_column(
        self, order_type: Optional[str]
    ) -> Union[StagePassed[str], StageFailed]:
        """Columna que contiene el número de pedido para el tipo de pedido de la campaña."""
        effective_type = order_type or DEFAULT_ORDER_TYPE
        logical_field = self.order_type_fields.get(effective_type)
        if logical_field is None:
            return StageFailed(
                kind=FailureKind.ORDER_TYPE_UNRECOGNIZED,
                context={
                    "order_type": effective_type,
                    "known_types": sorted(self.order_type_fields),
                },
            )
        column = self.column_for(logical_field)
        if column is None:
            return StageFailed(
                kind=FailureKind.ORDER_COLUMN_UNMAPPED,
                context={"order_type": effective_type, "logical_field": logical_field},
            )
        return StagePassed(column)
