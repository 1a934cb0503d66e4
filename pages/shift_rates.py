"""
Shift & Rates page: per-product rate and density observation for the
selected shift.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from db import get_session
from outlet_config import OutletConfig
from pages.helpers import current_user, current_username, require_outlet, require_permission, shift_picker
from permission_manager import PermissionManager
from reconciliation import maybe_density_at_15c, parse_amount
from shift_service import ShiftService
from timezone_utils import format_local_datetime
from ui import header


def render() -> None:
    header("Shift & Rates")
    require_permission(PermissionManager.can_make_entries(current_user() or {}),
                       "Only outlet managers can enter rates.")
    outlet_id = require_outlet()

    shift_type, shift_date = shift_picker("rates")
    st.caption(f"📅 {OutletConfig.shift_label(shift_type.value)} shift of {shift_date:%d-%b-%Y}")

    with get_session() as s:
        service = ShiftService(s, outlet_id, current_username())
        defaults = service.rate_form_defaults(shift_type, shift_date)

    if not defaults:
        st.info("No active products. Ask the dealer to add products under Outlet Setup.")
        return

    with st.form("rates_form"):
        entries = []
        for row in defaults:
            pid = row["product_id"]
            st.markdown(f"**{row['product_name']}**")
            c1, c2, c3, c4 = st.columns(4)
            rate = c1.number_input("Rate / L", min_value=0.0, value=float(row["rate"] or 0.0),
                                   step=0.01, format="%.2f", key=f"rate_{pid}")
            density = c2.text_input("Observed density (kg/m³)",
                                    value="" if row["observed_density"] is None else f"{row['observed_density']}",
                                    key=f"density_{pid}")
            temp = c3.text_input("Observed temp (°C)",
                                 value="" if row["observed_temperature"] is None else f"{row['observed_temperature']}",
                                 key=f"temp_{pid}")
            preview = maybe_density_at_15c(parse_amount(density), parse_amount(temp))
            c4.metric("Density @15°C", "-" if preview is None else f"{preview:.2f}")
            if row["last_updated"]:
                st.caption(f"Last updated {format_local_datetime(row['last_updated'], '%d-%b-%Y %H:%M')}")
            entries.append({
                "product_id": pid,
                "rate": rate,
                "observed_density": density,
                "observed_temperature": temp,
            })

        submitted = st.form_submit_button("💾 Save rates", type="primary")

    if submitted:
        with get_session() as s:
            saved = ShiftService(s, outlet_id, current_username()).save_rates(shift_type, shift_date, entries)
        st.success(f"Saved {len(saved)} rate(s).")

    with get_session() as s:
        rates = ShiftService(s, outlet_id, current_username()).rates_for(shift_type, shift_date)
    if rates:
        st.markdown("#### Saved for this shift")
        st.dataframe(pd.DataFrame([{
            "Product": r.product_name,
            "Rate": r.rate,
            "Density": r.observed_density,
            "Temp °C": r.observed_temperature,
            "Density @15°C": r.density_at_15c,
        } for r in rates]), width="stretch", hide_index=True)
    else:
        st.warning("No rates saved for this shift yet; calculated proceeds will show as 0.")
