"""Configuración de la aplicación cargada desde YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sales_robot.domain.entities import DEFAULT_ORDER_TYPE_FIELDS
from sales_robot.domain.exceptions import InvalidConfigurationError

DATE_FORMATS = ("DMY", "MDY", "ISO", "DMY_DOT", "DMY_DASH")
PAIR_ROWS_POLICIES = ("FIRST_ROW", "CONSISTENT")


@dataclass(frozen=True)
class DatabaseConfig:
    path: str


@dataclass(frozen=True)
class ValidationConfig:
    default_date_format: str = "DMY"
    timezone: str = "America/Sao_Paulo"
    pair_rows_policy: str = "FIRST_ROW"
    order_type_fields: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ORDER_TYPE_FIELDS))


@dataclass(frozen=True)
class HistoryConfig:
    default_limit: int = 50
    dashboard_days: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str | Path) -> AppConfig:
    """Carga y valida la configuración desde un archivo YAML."""
    path = Path(config_path).resolve()
    if not path.exists():
        msg = f"Archivo de configuración no encontrado: {path}"
        raise FileNotFoundError(msg)

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        msg = f"YAML inválido: se esperaba dict, se obtuvo {type(raw).__name__}"
        raise InvalidConfigurationError(msg)

    _validate_required_keys(raw)

    return AppConfig(
        database=_build_database_config(raw.get("database", {})),
        validation=_build_validation_config(raw.get("validation") or {}),
        history=HistoryConfig(**(raw.get("history") or {})),
        logging=LoggingConfig(**(raw.get("logging") or {})),
    )


def _validate_required_keys(raw: dict[str, Any]) -> None:
    """Valida que las secciones requeridas existan en el YAML."""
    required = {"database"}
    missing = required - set(raw.keys())
    if missing:
        msg = f"Secciones requeridas faltantes en YAML: {sorted(missing)}"
        raise InvalidConfigurationError(msg)


def _build_database_config(data: dict[str, Any]) -> DatabaseConfig:
    if not isinstance(data, dict) or "path" not in data:
        msg = "database.path es requerido"
        raise InvalidConfigurationError(msg)
    return DatabaseConfig(path=str(data["path"]))


def _build_validation_config(data: dict[str, Any]) -> ValidationConfig:
    """Construye ValidationConfig validando formato de fecha, política y tabla de pedidos."""
    data = dict(data)  # shallow copy
    date_format = str(data.get("default_date_format", "DMY")).upper()
    if date_format not in DATE_FORMATS:
        msg = f"validation.default_date_format inválido: {date_format}. Válidos: {DATE_FORMATS}"
        raise InvalidConfigurationError(msg)
    data["default_date_format"] = date_format

    policy = str(data.get("pair_rows_policy", "FIRST_ROW")).upper()
    if policy not in PAIR_ROWS_POLICIES:
        msg = f"validation.pair_rows_policy inválido: {policy}. Válidos: {PAIR_ROWS_POLICIES}"
        raise InvalidConfigurationError(msg)
    data["pair_rows_policy"] = policy

    if "order_type_fields" in data:
        data["order_type_fields"] = validate_order_type_fields(data["order_type_fields"])
    return ValidationConfig(**data)


def validate_order_type_fields(table: Any) -> dict[str, str]:
    """La tabla tipo de pedido → campo lógico no puede estar vacía ni tener valores vacíos."""
    if not isinstance(table, dict) or not table:
        msg = "validation.order_type_fields debe ser un dict no vacío"
        raise InvalidConfigurationError(msg)
    cleaned: dict[str, str] = {}
    for order_type, logical_field in table.items():
        key = str(order_type).strip()
        value = "" if logical_field is None else str(logical_field).strip()
        if not key or not value:
            msg = f"validation.order_type_fields tiene una entrada vacía: {order_type!r}"
            raise InvalidConfigurationError(msg)
        cleaned[key] = value
    return cleaned
