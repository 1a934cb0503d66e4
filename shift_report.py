# shift_report.py
"""
Shift summary exports: per-attendant table with a totals row, as a pandas
DataFrame and as CSV / XLSX / PDF bytes for download.
"""

from datetime import datetime
from io import BytesIO
from typing import List, Optional

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from outlet_config import OutletConfig

SUMMARY_COLUMNS = [
    "Attendant", "Readings", "Liters Sold", "Cash", "Credit", "UPI", "Card",
    "Actual Proceeds", "Calculated Proceeds", "Shortage", "Status",
]

HEADER_COLOR = "#1f4788"


def summary_dataframe(summary) -> pd.DataFrame:
    """
    One row per attendant plus a TOTAL row.
    `Shortage` keeps its sign (positive = short); `Status` spells it out.
    """
    rows = []
    for a in summary.attendants:
        rows.append({
            "Attendant": a.attendant_name or f"#{a.attendant_id}",
            "Readings": a.reading_count,
            "Liters Sold": round(a.liters_sold, 2),
            "Cash": round(a.total_cash, 2),
            "Credit": round(a.total_credit, 2),
            "UPI": round(a.total_upi, 2),
            "Card": round(a.total_card, 2),
            "Actual Proceeds": round(a.actual_proceeds, 2),
            "Calculated Proceeds": round(a.calculated_proceeds, 2),
            "Shortage": round(a.shortage, 2),
            "Status": a.label,
        })

    t = summary.totals
    rows.append({
        "Attendant": "TOTAL",
        "Readings": sum(a.reading_count for a in summary.attendants),
        "Liters Sold": round(t.liters_sold, 2),
        "Cash": round(t.total_cash, 2),
        "Credit": round(t.total_credit, 2),
        "UPI": round(t.total_upi, 2),
        "Card": round(t.total_card, 2),
        "Actual Proceeds": round(t.total_actual, 2),
        "Calculated Proceeds": round(t.total_calculated, 2),
        "Shortage": round(t.total_shortage, 2),
        "Status": t.label,
    })
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def export_filename(summary, outlet_code: Optional[str], ext: str) -> str:
    code = (outlet_code or "OUTLET").replace(" ", "_")
    return f"ShiftSummary_{code}_{summary.shift_date.isoformat()}_{summary.shift_type.value}.{ext}"


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


def to_excel_bytes(df: pd.DataFrame, sheet_name: str = "ShiftSummary") -> bytes:
    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return bio.getvalue()


def _cell_text(col: str, val) -> str:
    if col in ("Attendant", "Status", "Readings"):
        return str(val)
    try:
        number = float(val)
    except (TypeError, ValueError):
        return str(val)
    if col == "Shortage":
        # red = short, green = excess
        color = "#dc3545" if number > 0 else "#28a745" if number < 0 else "#333333"
        return f"<font color='{color}'><b>{abs(number):,.2f}</b></font>"
    return f"{number:,.2f}"


def to_pdf_bytes(
    df: pd.DataFrame,
    outlet_name: str,
    shift_label: str,
    username: Optional[str] = None,
) -> bytes:
    """Landscape A4 summary report"""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=0.8 * cm,
        rightMargin=0.8 * cm,
        topMargin=0.8 * cm,
        bottomMargin=0.8 * cm,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "SummaryTitle",
        parent=styles["Heading1"],
        fontSize=16,
        textColor=colors.HexColor(HEADER_COLOR),
        spaceAfter=8,
        alignment=TA_CENTER,
        fontName="Helvetica-Bold",
    )
    subtitle_style = ParagraphStyle(
        "SummarySubtitle",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.HexColor("#666666"),
        spaceAfter=6,
        alignment=TA_CENTER,
    )
    header_style = ParagraphStyle(
        "SummaryHeader", parent=styles["Normal"], fontSize=8, leading=10,
        alignment=TA_CENTER, fontName="Helvetica-Bold",
    )
    cell_style = ParagraphStyle(
        "SummaryCell", parent=styles["Normal"], fontSize=8, leading=10, alignment=TA_CENTER,
    )

    elements: List = [
        Paragraph(f"<b>SHIFT SUMMARY</b><br/><font size=13>{outlet_name}</font>", title_style),
        Spacer(1, 0.3 * cm),
        Paragraph(
            f"{shift_label}<br/>Generated: {datetime.now().strftime('%d-%b-%Y %H:%M')}",
            subtitle_style,
        ),
        Spacer(1, 0.4 * cm),
    ]

    table_data = [[
        Paragraph(f"<font color='white'>{col}</font>", header_style) for col in df.columns
    ]]
    last = len(df) - 1
    for idx, (_, row) in enumerate(df.iterrows()):
        cells = []
        for col in df.columns:
            text = _cell_text(col, row[col])
            if idx == last:
                text = f"<b>{text}</b>"
            cells.append(Paragraph(text, cell_style))
        table_data.append(cells)

    width = landscape(A4)[0] - 1.6 * cm
    table = Table(table_data, colWidths=[width / len(df.columns)] * len(df.columns), repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(HEADER_COLOR)),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -2), [colors.white, colors.HexColor("#f8f9fa")]),
        ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#e9ecef")),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BOX", (0, 0), (-1, -1), 1, colors.HexColor(HEADER_COLOR)),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]))
    elements.append(table)

    elements.append(Spacer(1, 0.3 * cm))
    footer = (
        f"<font size=7 color='#666666'>Generated by: {username or 'system'} | "
        f"FPMS - Fuel Point Management System | Amounts in {OutletConfig.CURRENCY_SYMBOL}</font>"
    )
    elements.append(Paragraph(footer, subtitle_style))

    doc.build(elements)
    pdf_data = buffer.getvalue()
    buffer.close()
    return pdf_data
