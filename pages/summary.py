"""
Summary page: per-attendant reconciliation for the selected shift, with
CSV / XLSX / PDF export.
"""
from __future__ import annotations

import streamlit as st

from db import get_session
from outlet_config import OutletConfig
from outlet_manager import OutletManager
from pages.helpers import current_user, current_username, money, require_outlet, require_permission, shift_picker
from permission_manager import PermissionManager
from shift_report import export_filename, summary_dataframe, to_csv_bytes, to_excel_bytes, to_pdf_bytes
from shift_service import ShiftService
from ui import header


def render() -> None:
    header("Summary")
    require_permission(PermissionManager.can_view_summary(current_user() or {}))
    outlet_id = require_outlet()

    shift_type, shift_date = shift_picker("summary")
    with get_session() as s:
        summary = ShiftService(s, outlet_id, current_username()).shift_summary(shift_type, shift_date)
        outlet = OutletManager.get_outlet(s, outlet_id)
        outlet_name = outlet.name if outlet else ""
        outlet_code = outlet.sap_code if outlet else None

    if not summary.attendants:
        st.info("No readings for this shift yet.")
        return

    t = summary.totals
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Liters sold", f"{t.liters_sold:,.2f}")
    m2.metric("Calculated", money(t.total_calculated))
    m3.metric("Actual", money(t.total_actual))
    m4.metric(t.label, money(abs(t.total_shortage)))
    if t.unrated_readings:
        st.warning(f"⚠️ {t.unrated_readings} reading(s) have no rate for this shift; their calculated proceeds are 0.")

    df = summary_dataframe(summary)
    st.dataframe(df, width="stretch", hide_index=True)

    st.markdown("#### 📤 Export")
    shift_label = f"{OutletConfig.shift_label(shift_type.value)} shift · {shift_date:%d-%b-%Y}"
    c1, c2, c3 = st.columns(3)
    c1.download_button("⬇️ CSV", data=to_csv_bytes(df), file_name=export_filename(summary, outlet_code, "csv"),
                       mime="text/csv", width="stretch")
    c2.download_button("⬇️ XLSX", data=to_excel_bytes(df), file_name=export_filename(summary, outlet_code, "xlsx"),
                       mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                       width="stretch")
    c3.download_button("⬇️ PDF", data=to_pdf_bytes(df, outlet_name, shift_label, current_username()),
                       file_name=export_filename(summary, outlet_code, "pdf"), mime="application/pdf",
                       width="stretch")
