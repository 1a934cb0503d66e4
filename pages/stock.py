"""
Stock page: opening stock, receipt and invoice value per tank for the shift.
"""
from __future__ import annotations

import streamlit as st

from db import get_session
from pages.helpers import current_user, current_username, require_outlet, require_permission, shift_picker
from permission_manager import PermissionManager
from shift_service import ShiftService
from ui import header


def render() -> None:
    header("Stock")
    user = current_user() or {}
    require_permission(PermissionManager.can_make_entries(user), "Only outlet managers can enter stock.")
    outlet_id = require_outlet()

    shift_type, shift_date = shift_picker("stock")
    with get_session() as s:
        rows = ShiftService(s, outlet_id, current_username()).stock_form_defaults(shift_type, shift_date)

    if not rows:
        st.info("No active tanks. Ask the dealer to add tanks under Outlet Setup.")
        return

    for row in rows:
        tid = row["tank_id"]
        with st.form(f"stock_form_{tid}"):
            st.markdown(f"**Tank {row['tank_number']}** · {row['product_name']} · capacity {row['capacity']:,.0f} L")
            c1, c2, c3 = st.columns(3)
            opening = c1.number_input("Opening stock (L)", min_value=0.0,
                                      value=float(row["opening_stock"] or 0.0), key=f"st_open_{tid}")
            receipt = c2.number_input("Receipt (L)", min_value=0.0,
                                      value=float(row["receipt"] or 0.0), key=f"st_rcpt_{tid}")
            invoice = c3.number_input("Invoice value", min_value=0.0,
                                      value=float(row["invoice_value"] or 0.0), key=f"st_inv_{tid}")
            label = "💾 Update" if row["entry_id"] else "💾 Save"
            if st.form_submit_button(label):
                try:
                    with get_session() as s:
                        ShiftService(s, outlet_id, current_username()).save_stock_entry(
                            tid, shift_type, shift_date,
                            {"opening_stock": opening, "receipt": receipt, "invoice_value": invoice},
                            manager_id=user.get("id") if user.get("role") == "manager" else None,
                        )
                except ValueError as e:
                    st.error(str(e))
                else:
                    st.success(f"Tank {row['tank_number']} saved.")
