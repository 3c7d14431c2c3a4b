"""Printable spreadsheet for a loan plan.

The workbook mirrors the paper payment plan handed to borrowers: a header
block with the group name and plan number, the borrower's details, one row
per installment with blank signature columns, and a totals row. Everything
is laid out to fit a single A4 portrait page.

The renderer only reads the plan and its stored schedule; it never
recomputes anything.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.page import PageMargins

from .data_models import Plan
from .utils import round_half_up, to_decimal

SHEET_TITLE = "Plan de Pago"
GROUP_NAME = "GRUPO SOLIDARIO"
GROUP_MOTTO = "HOY POR MI MAÑANA POR TI"
MONEY_FORMAT = '"$" #,##0'

COLUMN_WIDTHS = {"A": 8, "B": 12, "C": 14, "D": 14, "E": 14, "F": 14, "G": 20, "H": 20}
TABLE_HEADERS = [
    "N° de cuota",
    "Fecha",
    "Saldo",
    "Capital",
    "Interes",
    "Total",
    "Firma Solicitante",
    "Firma Responsable",
]
LAST_COLUMN = len(TABLE_HEADERS)
HEADER_ROW = 12

DEFAULT_ROW_HEIGHT = 18
HEADER_ROW_HEIGHT = 34
MIN_DATA_ROW_HEIGHT = 14
MAX_DATA_ROW_HEIGHT = 34
A4_HEIGHT_PTS = 841.89

_thin = Side(style="thin")
BORDER_ALL = Border(top=_thin, left=_thin, bottom=_thin, right=_thin)
FILL_STRIPE = PatternFill(fill_type="solid", fgColor="FFF2F2F2")
FILL_TOTAL = PatternFill(fill_type="solid", fgColor="FFD9D9D9")
CENTER = Alignment(horizontal="center", vertical="center")
RIGHT = Alignment(horizontal="right", vertical="center")
VCENTER = Alignment(vertical="center")


def _label_value(label: str, value: Any, *, bold_label: bool = True, bold_value: bool = False) -> CellRichText:
    return CellRichText(
        TextBlock(InlineFont(b=bold_label), label),
        TextBlock(InlineFont(b=bold_value), f" {'' if value is None else value}"),
    )


def _percent(rate: Optional[float]) -> str:
    basis_points = round_half_up(to_decimal(rate or 0) * 10000)
    return f"{basis_points / 100:g}%"


def _style_row(ws, row: int, *, fill: Optional[PatternFill] = None) -> None:
    for col in range(1, LAST_COLUMN + 1):
        cell = ws.cell(row=row, column=col)
        cell.border = BORDER_ALL
        if fill is not None:
            cell.fill = fill


def _setup_page(ws) -> None:
    ws.sheet_format.defaultRowHeight = DEFAULT_ROW_HEIGHT
    ws.page_setup.paperSize = ws.PAPERSIZE_A4
    ws.page_setup.orientation = ws.ORIENTATION_PORTRAIT
    ws.page_setup.fitToWidth = 1
    ws.page_setup.fitToHeight = 1
    ws.sheet_properties.pageSetUpPr.fitToPage = True
    ws.page_margins = PageMargins(left=0.7, right=0.7, top=0.75, bottom=0.75, header=0.3, footer=0.3)
    for letter, width in COLUMN_WIDTHS.items():
        ws.column_dimensions[letter].width = width


def _write_header(ws, plan: Plan) -> None:
    ws.merge_cells("A1:F1")
    ws["A1"] = GROUP_NAME
    ws["A1"].font = Font(bold=True, size=14)
    ws["A1"].alignment = Alignment(horizontal="center")

    ws.merge_cells("A2:F2")
    ws["A2"] = GROUP_MOTTO
    ws["A2"].font = Font(bold=True, size=10)
    ws["A2"].alignment = Alignment(horizontal="center")

    ws.merge_cells("G1:H1")
    ws["G1"] = f"PLAN DE PAGO: N° {plan.plan_numero if plan.plan_numero not in (None, '') else '-'}"
    ws["G1"].alignment = CENTER

    ws.merge_cells("G2:H2")
    gestion = plan.gestion if plan.gestion not in (None, "") else "-"
    ws["G2"] = _label_value("Gestión:", gestion, bold_label=False, bold_value=True)
    ws["G2"].alignment = CENTER

    ws.merge_cells("G4:H4")
    ws["G4"] = CellRichText(TextBlock(InlineFont(b=True), "FIRMA:"), " ____________________")
    ws["G4"].alignment = RIGHT

    ws["A4"] = _label_value("Nombre:", plan.nombre)
    ws["E4"] = _label_value("DNI:", plan.dni)
    ws["A5"] = _label_value("Fecha de desembolso:", plan.fecha_desembolso)
    ws["A6"] = _label_value("Monto del préstamo:", plan.monto)
    ws["A7"] = _label_value("Interés Mensual:", _percent(plan.tasa_mensual))
    ws["A8"] = _label_value("Gastos Administrativos:", _percent(plan.gasto_admin))
    ws["A9"] = _label_value("Tiempo de préstamo:", f"{plan.cuotas} meses")
    ws["A10"] = _label_value("Forma de Pago:", plan.forma_pago or "Efectivo")


def _fit_data_rows(ws, first: int, last: int, totals_row: int) -> None:
    """Stretch or shrink installment rows so the table fills one page."""
    count = last - first + 1
    if count <= 0:
        return
    m = ws.page_margins
    margins_pts = (m.top + m.bottom + m.header + m.footer) * 72
    fixed_rows = list(range(1, HEADER_ROW)) + [HEADER_ROW, totals_row]
    fixed_pts = sum(ws.row_dimensions[r].height or DEFAULT_ROW_HEIGHT for r in fixed_rows)
    height = (A4_HEIGHT_PTS - margins_pts - fixed_pts) / count
    height = max(MIN_DATA_ROW_HEIGHT, min(MAX_DATA_ROW_HEIGHT, height))
    for r in range(first, last + 1):
        ws.row_dimensions[r].height = height


def build_workbook(plan: Plan) -> Workbook:
    """Lay out ``plan`` and its schedule on a single worksheet."""
    if plan.schedule is None:
        raise ValueError(f"Plan {plan.id} has no schedule to export")

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    _setup_page(ws)
    _write_header(ws, plan)

    for col, title in enumerate(TABLE_HEADERS, start=1):
        cell = ws.cell(row=HEADER_ROW, column=col, value=title)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    ws.row_dimensions[HEADER_ROW].height = HEADER_ROW_HEIGHT
    _style_row(ws, HEADER_ROW)

    r = HEADER_ROW + 1
    for row in plan.schedule.rows:
        ws.cell(row=r, column=1, value=row.cuota).alignment = CENTER
        ws.cell(row=r, column=2, value=row.fecha).alignment = VCENTER
        for col, value in enumerate((row.saldo, row.capital, row.interes, row.total), start=3):
            cell = ws.cell(row=r, column=col, value=value)
            cell.number_format = MONEY_FORMAT
            cell.alignment = RIGHT
        ws.cell(row=r, column=7).alignment = VCENTER
        ws.cell(row=r, column=8).alignment = VCENTER
        _style_row(ws, r, fill=FILL_STRIPE if row.cuota % 2 == 1 else None)
        r += 1

    totals_row = r
    _fit_data_rows(ws, HEADER_ROW + 1, totals_row - 1, totals_row)

    ws.merge_cells(start_row=totals_row, start_column=1, end_row=totals_row, end_column=3)
    label = ws.cell(row=totals_row, column=1, value="RESUMEN TOTAL:")
    label.font = Font(bold=True)
    label.alignment = Alignment(horizontal="left", vertical="center")
    totals = (plan.schedule.sum_capital, plan.schedule.sum_interes, plan.schedule.sum_total)
    for col, value in enumerate(totals, start=4):
        cell = ws.cell(row=totals_row, column=col, value=value)
        cell.number_format = MONEY_FORMAT
        cell.font = Font(bold=True)
        cell.alignment = RIGHT
    _style_row(ws, totals_row, fill=FILL_TOTAL)

    return wb


def render_workbook(plan: Plan) -> bytes:
    """Return the plan's workbook as ``.xlsx`` bytes."""
    buffer = BytesIO()
    build_workbook(plan).save(buffer)
    return buffer.getvalue()


def export_filename(plan: Plan) -> str:
    return f"plan_{plan.id}.xlsx"
