"""
Etapa de reglas (Rule Builder).

Dos chequeos independientes, ambos obligatorios: cantidad de filas según el tipo
de unidad del requisito y cada condición campo/operador/valor. Si todo pasa,
`resolve_payout` busca el producto de la primera fila en el catálogo.
"""

from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

import structlog

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.application.transformers import cell_text
from sales_robot.domain.entities import (
    Condition,
    LogicalField,
    SubmissionStatus,
    SubmissionView,
    UnitType,
)
from sales_robot.domain.outcomes import FailureKind, StageFailed, StagePassed
from sales_robot.domain.value_objects import Payout

logger = structlog.get_logger()


class ConditionOperator:
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"

    ALL = (EQUALS, NOT_EQUALS, CONTAINS, NOT_CONTAINS, GREATER_THAN, LESS_THAN)


def normalize_product_code(value: object) -> str:
    """Código de producto tal como se busca en el catálogo: sin espacios y en mayúsculas."""
    return cell_text(value).upper()


def _to_number(value: object) -> Optional[Decimal]:
    text = cell_text(value).replace(",", ".")
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def condition_holds(operator: str, actual: object, expected: str) -> bool:
    """Compara el valor de la celda contra el valor esperado. Operador ya validado."""
    if operator == ConditionOperator.EQUALS:
        return cell_text(actual) == expected.strip()
    if operator == ConditionOperator.NOT_EQUALS:
        return cell_text(actual) != expected.strip()
    if operator == ConditionOperator.CONTAINS:
        return expected in cell_text(actual)
    if operator == ConditionOperator.NOT_CONTAINS:
        return expected not in cell_text(actual)

    # Comparaciones numéricas: un valor no numérico nunca satisface la condición
    left, right = _to_number(actual), _to_number(expected)
    if left is None or right is None:
        return False
    if operator == ConditionOperator.GREATER_THAN:
        return left > right
    return left < right


class RuleEvaluator:
    def evaluate(
        self,
        view: SubmissionView,
        rows: Sequence[dict[str, Any]],
        mapping: ColumnMapping,
    ) -> Union[StagePassed[int], StageFailed]:
        """Chequeo de cantidad + todas las condiciones (AND, corta en la primera falla)."""
        requirement = view.requirement
        expected_rows = requirement.unit_type.expected_rows
        if len(rows) != expected_rows:
            kind = (
                FailureKind.PAIR_TWO_ROWS_REQUIRED
                if requirement.unit_type is UnitType.PAIR
                else FailureKind.UNIT_ONE_ROW_REQUIRED
            )
            return StageFailed(kind=kind, context={"found": len(rows), "expected": expected_rows})

        for condition in requirement.conditions:
            failure = self._check_condition(condition, view, rows, mapping)
            if failure is not None:
                return failure

        logger.debug("rules_satisfied", conditions=len(requirement.conditions))
        return StagePassed(len(requirement.conditions))

    def _check_condition(
        self,
        condition: Condition,
        view: SubmissionView,
        rows: Sequence[dict[str, Any]],
        mapping: ColumnMapping,
    ) -> Optional[StageFailed]:
        if condition.field == LogicalField.PRODUCT_CODE_CONDITION:
            return self._check_catalog_condition(condition, view, rows, mapping)

        column = mapping.column_for(condition.field)
        if column is None:
            return StageFailed(
                kind=FailureKind.RULE_FIELD_UNMAPPED,
                context={"field": condition.field, "condition_id": condition.id},
            )

        if condition.operator not in ConditionOperator.ALL:
            return StageFailed(
                kind=FailureKind.RULE_OPERATOR_UNKNOWN,
                context={
                    "operator": condition.operator,
                    "condition_id": condition.id,
                    "known_operators": list(ConditionOperator.ALL),
                },
            )

        actual = rows[0].get(column)
        if condition_holds(condition.operator, actual, condition.expected_value):
            return None
        return StageFailed(
            kind=FailureKind.RULE_NOT_SATISFIED,
            context={
                "condition_id": condition.id,
                "field": condition.field,
                "operator": condition.operator,
                "expected_value": condition.expected_value,
                "actual_value": cell_text(actual),
            },
        )

    def _check_catalog_condition(
        self,
        condition: Condition,
        view: SubmissionView,
        rows: Sequence[dict[str, Any]],
        mapping: ColumnMapping,
    ) -> Optional[StageFailed]:
        """Todos los códigos no vacíos de todas las filas deben existir en el catálogo."""
        column = mapping.column_for(LogicalField.PRODUCT_CODE)
        if column is None:
            return StageFailed(
                kind=FailureKind.RULE_FIELD_UNMAPPED,
                context={"field": LogicalField.PRODUCT_CODE, "condition_id": condition.id},
            )

        codes = [normalize_product_code(row.get(column)) for row in rows]
        codes = [code for code in codes if code]
        if not codes:
            return StageFailed(
                kind=FailureKind.RULE_PRODUCT_CODES_MISSING, context={"column": column}
            )

        missing = [code for code in codes if view.campaign.find_product(code) is None]
        if missing:
            return StageFailed(
                kind=FailureKind.RULE_PRODUCT_NOT_IN_CATALOG,
                context={"missing_codes": missing},
            )
        return None

    def resolve_payout(
        self,
        view: SubmissionView,
        rows: Sequence[dict[str, Any]],
        mapping: ColumnMapping,
    ) -> Union[StagePassed[Payout], StageFailed]:
        """
        Código y valor a pagar a partir de la primera fila.

        Un código ausente del catálogo va a CONFLICT: es un hueco en los datos
        de la campaña que el admin debe resolver, no un defecto de la venta.
        """
        column = mapping.column_for(LogicalField.PRODUCT_CODE)
        if column is None:
            return StageFailed(kind=FailureKind.PRODUCT_COLUMN_UNMAPPED)

        code = normalize_product_code(rows[0].get(column))
        if not code:
            return StageFailed(kind=FailureKind.PRODUCT_CODE_EMPTY, context={"column": column})

        entry = view.campaign.find_product(code)
        if entry is None:
            return StageFailed(
                kind=FailureKind.PRODUCT_NOT_IN_CATALOG,
                status=SubmissionStatus.CONFLICT,
                context={"product_code": code},
            )

        logger.debug("payout_resolved", product_code=code, amount=str(entry.payout_value))
        return StagePassed(Payout(product_code=code, amount=entry.payout_value))
