"""
Registro de mensajes duales: FailureKind → (mensaje técnico, mensaje para el vendedor).

El mensaje técnico es para auditoría del admin e incluye ids y valores de la fila.
El mensaje para el vendedor es breve y nunca expone identificadores internos.
Los textos están en portugués porque los lee el equipo de ventas en Brasil.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sales_robot.domain.outcomes import FailureKind

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class DualMessage:
    technical: str
    counterparty: str


MessageBuilder = Callable[[dict[str, Any]], DualMessage]


def _get(context: dict[str, Any], key: str) -> Any:
    value = context.get(key)
    if value is None or value == "":
        return NOT_AVAILABLE
    return value


def _technical(context: dict[str, Any], tag: str, body: str) -> str:
    return f"[{_get(context, 'campaign_title')}] [{tag}] {body}"


# ── Resolución de columnas ──────────────────────────────────


def _order_type_unrecognized(ctx: dict[str, Any]) -> DualMessage:
    known = ", ".join(ctx.get("known_types") or []) or NOT_AVAILABLE
    return DualMessage(
        technical=_technical(
            ctx,
            "ERRO CRÍTICO",
            f"Tipo de pedido '{_get(ctx, 'order_type')}' da campanha (ID: {_get(ctx, 'campaign_id')}) "
            f"não é reconhecido. Tipos válidos: {known}. Pedido afetado: {_get(ctx, 'order_number')}.",
        ),
        counterparty="Não foi possível localizar o pedido. Entre em contato com o administrador.",
    )


def _order_column_unmapped(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "ERRO CRÍTICO",
            f"Coluna {_get(ctx, 'logical_field')} (tipo de pedido {_get(ctx, 'order_type')}) não foi "
            f"mapeada na planilha pelo admin. Pedido afetado: {_get(ctx, 'order_number')}.",
        ),
        counterparty="Não foi possível localizar o pedido. Entre em contato com o administrador.",
    )


def _pair_rows_inconsistent(ctx: dict[str, Any]) -> DualMessage:
    values = ", ".join(str(v) for v in ctx.get("values") or []) or NOT_AVAILABLE
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"As linhas do pedido {_get(ctx, 'order_number')} divergem no campo "
            f"{_get(ctx, 'field')}: {values}. Requisito ID: {_get(ctx, 'requirement_id')}.",
        ),
        counterparty="As unidades do pedido possuem dados divergentes. Verifique o pedido no sistema.",
    )


# ── CNPJ ────────────────────────────────────────────────────


def _id_column_unmapped(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "ERRO CRÍTICO",
            "Mapeamento da coluna CNPJ_OTICA não encontrado no mapa de colunas fornecido pelo "
            f"admin. Pedido afetado: {_get(ctx, 'order_number')}.",
        ),
        counterparty="Erro interno ao processar a validação. Entre em contato com o administrador.",
    )


def _id_not_registered(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Vendedor (ID: {_get(ctx, 'seller_id')}) não está associado a uma ótica com CNPJ "
            "cadastrado no sistema. Verifique o cadastro da ótica.",
        ),
        counterparty=(
            "Sua ótica não possui CNPJ cadastrado no sistema. "
            "Entre em contato com o administrador para regularizar o cadastro."
        ),
    )


def _id_not_found_in_row(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Coluna '{_get(ctx, 'column')}' (CNPJ_OTICA) está vazia na planilha para o pedido "
            f"{_get(ctx, 'order_number')}.",
        ),
        counterparty="O CNPJ do pedido não foi encontrado na planilha enviada.",
    )


def _id_invalid_format(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"CNPJ '{_get(ctx, 'row_value')}' do pedido {_get(ctx, 'order_number')} é inválido "
            f"(não possui 14 dígitos após limpeza). Valor recebido: \"{_get(ctx, 'raw_value')}\".",
        ),
        counterparty=(
            f"O CNPJ '{_get(ctx, 'raw_value')}' do pedido está em formato inválido. "
            "Verifique o CNPJ no sistema de origem."
        ),
    )


def _id_mismatch(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"CNPJ do pedido {_get(ctx, 'order_number')} na planilha ({_get(ctx, 'row_value')}) não "
            f"corresponde ao CNPJ da ótica do vendedor ({_get(ctx, 'seller_tax_id')}) nem ao CNPJ "
            f"da matriz ({_get(ctx, 'parent_tax_id')}). Vendedor ID: {_get(ctx, 'seller_id')}, "
            f"Ótica: {_get(ctx, 'optics_name')}, Matriz: {_get(ctx, 'parent_name')}.",
        ),
        counterparty=(
            "O CNPJ do pedido não corresponde à sua ótica cadastrada. "
            "Verifique se o pedido foi realizado pela ótica correta."
        ),
    )


# ── Fecha de venta ──────────────────────────────────────────


def _date_column_unmapped(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "ERRO CRÍTICO",
            "Coluna DATA_VENDA não foi mapeada na planilha pelo admin. "
            f"Pedido afetado: {_get(ctx, 'order_number')}.",
        ),
        counterparty="Não foi possível validar a data da venda. Entre em contato com o administrador.",
    )


def _date_empty(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Data da venda vazia na coluna '{_get(ctx, 'column')}' para o pedido "
            f"{_get(ctx, 'order_number')}.",
        ),
        counterparty="A data da venda está ausente no pedido. Verifique se o pedido está completo no sistema.",
    )


def _date_unparseable(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Data da venda '{_get(ctx, 'raw_value')}' do pedido {_get(ctx, 'order_number')} está em "
            f"formato inválido. Formato esperado: {_get(ctx, 'date_format')}.",
        ),
        counterparty=(
            f"A data da venda '{_get(ctx, 'raw_value')}' está em formato inválido. "
            "Entre em contato com o administrador."
        ),
    )


def _date_out_of_range(ctx: dict[str, Any]) -> DualMessage:
    if ctx.get("direction") == "BEFORE":
        reason = "ANTES do início da campanha"
    else:
        reason = "DEPOIS do fim da campanha"
    period = f"{_get(ctx, 'start_date')} até {_get(ctx, 'end_date')}"
    return DualMessage(
        technical=_technical(
            ctx,
            "VALIDAÇÃO CRÍTICA",
            f"Data da venda do pedido {_get(ctx, 'order_number')} está FORA do período da campanha. "
            f"Data da venda: {_get(ctx, 'sale_date')}, período: {period}. "
            f"MOTIVO: venda ocorreu {reason}.",
        ),
        counterparty=(
            f"A data da venda ({_get(ctx, 'sale_date')}) está fora do período válido da campanha "
            f"({period}): a venda ocorreu {reason.lower()}."
        ),
    )


# ── Reglas ──────────────────────────────────────────────────


def _pair_two_rows_required(ctx: dict[str, Any]) -> DualMessage:
    found = ctx.get("found", 0)
    cause = "faltam unidades de lentes" if found < 2 else "pedido duplicado ou com linhas extras"
    if found == 1:
        seen = "foi encontrada apenas 1 unidade"
    else:
        seen = f"foram encontradas {found} unidades"
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Requisito do tipo PAR (ID: {_get(ctx, 'requirement_id')}) requer exatamente 2 linhas "
            f"para o pedido {_get(ctx, 'order_number')}, mas foram encontradas {found}. "
            f"CAUSA PROVÁVEL: {cause}.",
        ),
        counterparty=(
            f"São necessárias 2 unidades de lentes no pedido (par completo), mas {seen}. "
            "Verifique se o pedido está completo no sistema."
        ),
    )


def _unit_one_row_required(ctx: dict[str, Any]) -> DualMessage:
    found = ctx.get("found", 0)
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Requisito do tipo UNIDADE (ID: {_get(ctx, 'requirement_id')}) requer exatamente 1 linha "
            f"para o pedido {_get(ctx, 'order_number')}, mas foram encontradas {found}.",
        ),
        counterparty=(
            f"É necessária 1 unidade de lente no pedido, mas foram encontradas {found} unidades. "
            "Verifique se há duplicação no sistema."
        ),
    )


def _rule_field_unmapped(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Campo '{_get(ctx, 'field')}' da condição {_get(ctx, 'condition_id')} não foi mapeado "
            f"pelo admin na planilha. Pedido afetado: {_get(ctx, 'order_number')}.",
        ),
        counterparty="Configuração do mapeamento de colunas incompleta. Entre em contato com o administrador.",
    )


def _rule_operator_unknown(ctx: dict[str, Any]) -> DualMessage:
    known = ", ".join(ctx.get("known_operators") or []) or NOT_AVAILABLE
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Operador '{_get(ctx, 'operator')}' da condição {_get(ctx, 'condition_id')} não é "
            f"reconhecido. Operadores válidos: {known}.",
        ),
        counterparty="Erro na configuração da regra. Entre em contato com o administrador.",
    )


def _rule_not_satisfied(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Condição não satisfeita para o pedido {_get(ctx, 'order_number')}: campo "
            f"'{_get(ctx, 'field')}' {_get(ctx, 'operator')} '{_get(ctx, 'expected_value')}', "
            f"encontrado '{_get(ctx, 'actual_value')}'. Requisito ID {_get(ctx, 'requirement_id')}, "
            f"Condição ID {_get(ctx, 'condition_id')}.",
        ),
        counterparty=(
            "O pedido não atende aos requisitos da campanha. Requisito: "
            f"{_get(ctx, 'field')} deve ser {_get(ctx, 'operator')} '{_get(ctx, 'expected_value')}'."
        ),
    )


def _rule_product_codes_missing(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Nenhum código de referência encontrado na coluna '{_get(ctx, 'column')}' nas linhas "
            f"do pedido {_get(ctx, 'order_number')}.",
        ),
        counterparty="O pedido não possui código de produto válido. Verifique a planilha enviada.",
    )


def _product_not_in_catalog(ctx: dict[str, Any]) -> DualMessage:
    codes = ", ".join(ctx.get("missing_codes") or [ctx.get("product_code") or NOT_AVAILABLE])
    return DualMessage(
        technical=_technical(
            ctx,
            "CONFLITO_MANUAL",
            f"Código de referência '{codes}' do pedido {_get(ctx, 'order_number')} não foi encontrado "
            f"no catálogo da campanha (ID: {_get(ctx, 'campaign_id')}). AÇÃO REQUERIDA: cadastrar o "
            "código no catálogo ou verificar se o código está correto.",
        ),
        counterparty=(
            f"O produto do pedido (código: {codes}) não está cadastrado nesta campanha. "
            "Entre em contato com o suporte para verificar a elegibilidade do produto."
        ),
    )


# ── Valor a pagar ───────────────────────────────────────────


def _product_column_unmapped(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            "Coluna CODIGO_REFERENCIA não foi mapeada na planilha pelo admin. "
            f"Pedido afetado: {_get(ctx, 'order_number')}.",
        ),
        counterparty="Não foi possível validar o código do produto. Entre em contato com o administrador.",
    )


def _product_code_empty(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "TÉCNICO",
            f"Código de referência vazio na coluna '{_get(ctx, 'column')}' para o pedido "
            f"{_get(ctx, 'order_number')}.",
        ),
        counterparty=(
            "O código de referência do produto está ausente no pedido. "
            "Verifique se o pedido está completo no sistema."
        ),
    )


# ── Conflicto ───────────────────────────────────────────────


def _seller_conflict(ctx: dict[str, Any]) -> DualMessage:
    return DualMessage(
        technical=_technical(
            ctx,
            "CONFLITO_MANUAL",
            f"Pedido {_get(ctx, 'order_number')} já foi validado para outro vendedor "
            f"(ID: {_get(ctx, 'other_seller_id')}, Nome: {_get(ctx, 'other_seller_name')}) nesta "
            f"campanha. Envio conflitante ID: {_get(ctx, 'other_submission_id')}. "
            "AÇÃO REQUERIDA: revisar manualmente qual vendedor deve receber os pontos.",
        ),
        counterparty=(
            "Este pedido já foi validado para outro vendedor. "
            "Entre em contato com o administrador para resolução do conflito."
        ),
    )


def _unknown(ctx: dict[str, Any]) -> DualMessage:
    detail = ctx.get("detail") or "Verifique os logs do sistema"
    return DualMessage(
        technical=_technical(ctx, "TÉCNICO", f"Erro não categorizado: {detail}"),
        counterparty="Erro ao validar o pedido. Entre em contato com o administrador.",
    )


MESSAGE_BUILDERS: dict[FailureKind, MessageBuilder] = {
    FailureKind.ORDER_TYPE_UNRECOGNIZED: _order_type_unrecognized,
    FailureKind.ORDER_COLUMN_UNMAPPED: _order_column_unmapped,
    FailureKind.PAIR_ROWS_INCONSISTENT: _pair_rows_inconsistent,
    FailureKind.ID_COLUMN_UNMAPPED: _id_column_unmapped,
    FailureKind.ID_NOT_REGISTERED: _id_not_registered,
    FailureKind.ID_NOT_FOUND_IN_ROW: _id_not_found_in_row,
    FailureKind.ID_INVALID_FORMAT: _id_invalid_format,
    FailureKind.ID_MISMATCH: _id_mismatch,
    FailureKind.DATE_COLUMN_UNMAPPED: _date_column_unmapped,
    FailureKind.DATE_EMPTY: _date_empty,
    FailureKind.DATE_UNPARSEABLE: _date_unparseable,
    FailureKind.DATE_OUT_OF_RANGE: _date_out_of_range,
    FailureKind.PAIR_TWO_ROWS_REQUIRED: _pair_two_rows_required,
    FailureKind.UNIT_ONE_ROW_REQUIRED: _unit_one_row_required,
    FailureKind.RULE_FIELD_UNMAPPED: _rule_field_unmapped,
    FailureKind.RULE_OPERATOR_UNKNOWN: _rule_operator_unknown,
    FailureKind.RULE_NOT_SATISFIED: _rule_not_satisfied,
    FailureKind.RULE_PRODUCT_CODES_MISSING: _rule_product_codes_missing,
    FailureKind.RULE_PRODUCT_NOT_IN_CATALOG: _product_not_in_catalog,
    FailureKind.PRODUCT_COLUMN_UNMAPPED: _product_column_unmapped,
    FailureKind.PRODUCT_CODE_EMPTY: _product_code_empty,
    FailureKind.PRODUCT_NOT_IN_CATALOG: _product_not_in_catalog,
    FailureKind.SELLER_CONFLICT: _seller_conflict,
    FailureKind.UNKNOWN: _unknown,
}


def build_messages(kind: FailureKind | None, context: dict[str, Any]) -> DualMessage:
    """Par de mensajes para `kind`; tipos sin entrada caen en el mensaje genérico."""
    builder = MESSAGE_BUILDERS.get(kind, _unknown) if kind is not None else _unknown
    return builder(context)
