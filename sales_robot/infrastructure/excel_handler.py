import math
from pathlib import Path
from typing import Any

import openpyxl
import pandas as pd
import structlog
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from sales_robot.application.dtos import OutcomeDetail

logger = structlog.get_logger()

REPORT_SHEET = "Resultado"

REPORT_COLUMNS = {
    "submission_id": "ID Envio",
    "order_number": "Numero Pedido",
    "previous_status": "Status Anterior",
    "status": "Status",
    "seller_summary": "Vendedor",
    "optics_summary": "Otica",
    "campaign_summary": "Campanha",
    "requirement_summary": "Requisito",
    "resolved_product_code": "Codigo Referencia",
    "payout_value": "Valor",
    "slot_number": "Cartela",
    "technical_message": "Mensagem Tecnica",
    "counterparty_message": "Mensagem Vendedor",
}

COLUMN_FORMATS = {
    "Numero Pedido": {"alignment": Alignment(horizontal="center")},
    "Status": {"alignment": Alignment(horizontal="center")},
    "Status Anterior": {"alignment": Alignment(horizontal="center")},
    "Valor": {"number_format": '"R$" #,##0.00'},
    "Cartela": {"number_format": "0", "alignment": Alignment(horizontal="center")},
    "Mensagem Tecnica": {"alignment": Alignment(horizontal="left", wrap_text=True)},
    "Mensagem Vendedor": {"alignment": Alignment(horizontal="left", wrap_text=True)},
}


def _clean_cell(value: Any) -> Any:
    """NaN/NaT de pandas → None; Timestamp → datetime nativo."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


class OpenpyxlSpreadsheetHandler:
    """Lee la planilha del admin como filas encabezado → valor y exporta el resultado."""

    def read_rows(
        self, file_path: Path, sheet_name: str | None = None, header_row: int | None = None
    ) -> list[dict[str, Any]]:
        actual_sheet = self._resolve_sheet(file_path, sheet_name)

        # header_row es 1-indexed (Excel), pandas usa 0-indexed
        header_arg = 0 if header_row is None else header_row - 1

        df = pd.read_excel(
            file_path,
            sheet_name=actual_sheet,
            header=header_arg,
            engine="openpyxl",
            dtype=object,
        )
        df.columns = [str(c).strip() for c in df.columns]
        df = df.dropna(how="all")

        rows = [
            {column: _clean_cell(value) for column, value in record.items()}
            for record in df.to_dict(orient="records")
        ]
        logger.info(
            "spreadsheet_read",
            path=str(file_path),
            sheet=actual_sheet,
            rows=len(rows),
            columns=list(df.columns),
        )
        return rows

    def write_report(self, details: list[OutcomeDetail], file_path: Path) -> None:
        """Exporta el detalle de una corrida a XLSX para auditoría del admin."""
        records = [
            {label: getattr(detail, attr) for attr, label in REPORT_COLUMNS.items()}
            for detail in details
        ]
        df = pd.DataFrame(records, columns=list(REPORT_COLUMNS.values()))
        df["Valor"] = df["Valor"].map(lambda v: float(v) if v is not None else None)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_excel(file_path, sheet_name=REPORT_SHEET, index=False, engine="openpyxl")

        wb = openpyxl.load_workbook(file_path)
        try:
            ws = wb[REPORT_SHEET]
            for col_idx, col_name in enumerate(df.columns, start=1):
                ws.cell(row=1, column=col_idx).font = Font(bold=True)
                width = max([len(col_name)] + [len(str(v)) for v in df[col_name] if v is not None])
                ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, 80)

                fmt = COLUMN_FORMATS.get(col_name)
                if not fmt:
                    continue
                for row_idx in range(2, ws.max_row + 1):
                    cell = ws.cell(row=row_idx, column=col_idx)
                    if "number_format" in fmt:
                        cell.number_format = fmt["number_format"]
                    if "alignment" in fmt:
                        cell.alignment = fmt["alignment"]
            wb.save(file_path)
        finally:
            wb.close()
        logger.info("report_written", path=str(file_path), rows=len(df))

    @staticmethod
    def _resolve_sheet(file_path: Path, requested: str | None) -> str:
        wb = openpyxl.load_workbook(file_path, read_only=True, data_only=True)
        try:
            sheets = wb.sheetnames
            if requested is None:
                return sheets[0]
            if requested in sheets:
                return requested
            raise ValueError(
                f"Sheet '{requested}' no encontrado en {file_path}. Sheets disponibles: {sheets}"
            )
        finally:
            wb.close()
