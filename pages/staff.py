"""
Staff page (dealer only): managers and attendants of the active outlet.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from db import get_session
from outlet_manager import OutletManager
from pages.helpers import current_user, require_outlet, require_permission, st_safe_rerun
from permission_manager import PermissionManager
from ui import header


def render() -> None:
    header("Staff")
    require_permission(PermissionManager.can_configure_outlet(current_user() or {}),
                       "Only dealers can manage staff.")
    outlet_id = require_outlet()

    with get_session() as s:
        staff = OutletManager.get_staff(s, outlet_id)
        rows = [{"ID": m.id, "Name": m.name, "Role": m.role.value, "Phone": m.phone_number,
                 "Active": m.is_active} for m in staff]

    if rows:
        st.dataframe(pd.DataFrame(rows), width="stretch", hide_index=True)
        c1, c2 = st.columns([0.7, 0.3])
        staff_id = c1.selectbox("Staff member", [r["ID"] for r in rows],
                                format_func=lambda i: next(r["Name"] for r in rows if r["ID"] == i),
                                key="staff_toggle_id")
        if c2.button("Activate / deactivate", key="staff_toggle_btn"):
            with get_session() as s:
                OutletManager.toggle_staff_status(s, outlet_id, staff_id)
            st_safe_rerun()

    with st.form("staff_form"):
        st.markdown("#### ➕ Add staff")
        c1, c2, c3 = st.columns(3)
        name = c1.text_input("Name")
        role = c2.selectbox("Role", ["attendant", "manager"])
        phone = c3.text_input("Phone number")
        password = st.text_input("Password (managers only)", type="password")
        if st.form_submit_button("Add", type="primary"):
            try:
                with get_session() as s:
                    OutletManager.create_staff(s, outlet_id, name, role, phone or None, password or None)
            except ValueError as e:
                st.error(str(e))
            else:
                st_safe_rerun()
