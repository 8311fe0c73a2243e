"""Parsing de celdas de la planilha: fechas de venta y texto de celdas."""

import math
import re
from datetime import date, datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

import structlog

logger = structlog.get_logger()

REFERENCE_TIMEZONE = "America/Sao_Paulo"

# Hora al final de la celda ("15/01/2025 10:30:00", "2025-01-15T10:30")
_TIME_SUFFIX = re.compile(r"(?:T|\s+)\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?\s*$")


class DateFormat(Enum):
    """Formatos de fecha aceptados en la planilha."""

    DMY = "DD/MM/YYYY"
    MDY = "MM/DD/YYYY"
    ISO = "YYYY-MM-DD"
    DMY_DOT = "DD.MM.YYYY"
    DMY_DASH = "DD-MM-YYYY"


def cell_text(value: object) -> str:
    """
    Texto de una celda, sin espacios laterales.

    None y NaN (celdas vacías leídas con pandas) → "". Un float entero como 100.0
    se convierte en "100" porque Excel guarda así los números de pedido.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def parse_date_with_format(
    value: object,
    date_format: DateFormat = DateFormat.DMY,
    timezone: str = REFERENCE_TIMEZONE,
) -> Optional[datetime]:
    """
    Convierte un texto de fecha en la medianoche local de `timezone`.

    El separador se detecta entre "/", "-" y ".". Retorna None ante cualquier
    valor imposible (31/02, mes 13, año fuera de 1900..2100). Celdas que ya
    vienen como fecha (Excel) no dependen del formato.
    Una hora al final del texto se ignora.
    """
    if isinstance(value, (datetime, date)):
        return datetime(value.year, value.month, value.day, tzinfo=ZoneInfo(timezone))

    text = _TIME_SUFFIX.sub("", cell_text(value))
    if not text:
        return None

    separator = "/"
    if "-" in text:
        separator = "-"
    elif "." in text:
        separator = "."

    parts = text.split(separator)
    if len(parts) != 3:
        logger.debug("date_wrong_part_count", value=text)
        return None

    try:
        numbers = [int(p.strip()) for p in parts]
    except ValueError:
        logger.debug("date_not_numeric", value=text)
        return None

    if date_format is DateFormat.MDY:
        month, day, year = numbers
    elif date_format is DateFormat.ISO:
        year, month, day = numbers
    else:
        day, month, year = numbers

    if not 1 <= day <= 31 or not 1 <= month <= 12 or not 1900 <= year <= 2100:
        logger.debug("date_out_of_bounds", value=text, day=day, month=month, year=year)
        return None

    try:
        calendar_day = date(year, month, day)
    except ValueError:
        logger.debug("date_impossible", value=text)
        return None

    return datetime(
        calendar_day.year,
        calendar_day.month,
        calendar_day.day,
        tzinfo=ZoneInfo(timezone),
    )


def is_within_campaign_period(sale_date: datetime | date, start: date, end: date) -> bool:
    """start(00:00) <= venta <= end(23:59:59.999), comparado a nivel de día."""
    sale_day = sale_date.date() if isinstance(sale_date, datetime) else sale_date
    start_day = start.date() if isinstance(start, datetime) else start
    end_day = end.date() if isinstance(end, datetime) else end
    return start_day <= sale_day <= end_day


def format_date_for_display(value: datetime | date) -> str:
    return value.strftime("%d/%m/%Y")


_ISO_SHAPE = re.compile(r"^\d{4}[-/.]\d{2}[-/.]\d{2}$")
_DOT_SHAPE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")
_DASH_SHAPE = re.compile(r"^\d{2}-\d{2}-\d{4}$")
_SLASH_SHAPE = re.compile(r"^\d{2}/\d{2}/\d{4}$")


def detect_date_format(value: object) -> Optional[DateFormat]:
    """Adivina el formato de una fecha de muestra. DD/MM vs MM/DD ambiguo → DMY."""
    text = cell_text(value)
    if not text:
        return None
    if _ISO_SHAPE.match(text):
        return DateFormat.ISO
    if _DOT_SHAPE.match(text):
        return DateFormat.DMY_DOT
    if _DASH_SHAPE.match(text) and parse_date_with_format(text, DateFormat.DMY_DASH):
        return DateFormat.DMY_DASH
    if _SLASH_SHAPE.match(text):
        return DateFormat.DMY
    logger.warning("date_format_not_detected", value=text)
    return None
