"""
Home page: dealer / manager login, then an at-a-glance dashboard.
"""
from __future__ import annotations

import streamlit as st

from auth import AuthManager
from dashboard_utils import DashboardMetrics
from db import get_session
from logger import log_info
from outlet_config import OutletConfig
from pages.helpers import current_user, money, st_safe_rerun
from timezone_utils import local_today
from ui import header


def _login_card() -> None:
    c1, c2, c3 = st.columns([0.2, 0.6, 0.2])
    with c2:
        st.markdown("### ⛽ Fuel Point Management System")
        st.caption("Shift readings, rates and reconciliation")

        with st.container(border=True):
            mode = st.radio("Login as", ["Dealer", "Manager"], horizontal=True, key="home_login_mode")
            if mode == "Dealer":
                ident = st.text_input("Email", key="home_email")
            else:
                ident = st.text_input("Phone number", key="home_phone")
            password = st.text_input("Password", type="password", key="home_password")

            if st.button("🔐 Login", key="home_login_btn", type="primary"):
                if not ident.strip() or not password.strip():
                    st.error("Please enter your credentials.")
                    return
                with get_session() as s:
                    if mode == "Dealer":
                        user = AuthManager.authenticate_dealer(s, ident, password)
                    else:
                        user = AuthManager.authenticate_manager(s, ident, password)

                if not user:
                    st.error("Invalid credentials.")
                    return

                st.session_state.auth_user = user
                st.session_state.active_outlet_id = user.get("outlet_id")
                log_info(f"Login: {ident.strip()} as {user['role']}")
                st_safe_rerun()


def _dashboard(user) -> None:
    outlet_id = st.session_state.get("active_outlet_id")

    if user["role"] == "dealer" and user.get("outlets"):
        outlets = user["outlets"]
        ids = [o["id"] for o in outlets]
        current = outlet_id if outlet_id in ids else ids[0]
        picked = st.selectbox(
            "Outlet", ids, index=ids.index(current),
            format_func=lambda i: next(o["name"] for o in outlets if o["id"] == i),
            key="home_outlet_select",
        )
        st.session_state.active_outlet_id = picked
        outlet_id = picked

    if not outlet_id:
        st.info("No outlet yet. Create one under **Outlet Setup**.")
        return

    with get_session() as s:
        stats = DashboardMetrics.get_sales_stats(s, outlet_id, today=local_today())
        tanks = DashboardMetrics.get_stock_levels(s, outlet_id)
        due = DashboardMetrics.get_calibration_due(s, outlet_id, today=local_today())

    m1, m2, m3 = st.columns(3)
    m1.metric("Today", money(stats["today"]["total"]))
    m2.metric(f"Last {OutletConfig.REPORT_WEEK_DAYS} days", money(stats["weekly"]["total"]))
    m3.metric(f"Last {OutletConfig.REPORT_MONTH_DAYS} days", money(stats["monthly"]["total"]))

    mix = DashboardMetrics.payment_mix(stats["monthly"])
    st.caption(" · ".join(f"{OutletConfig.PAYMENT_LABELS[m]} {pct:.1f}%" for m, pct in mix.items()))

    st.markdown("#### 🛢️ Tanks")
    icons = {"normal": "🟢", "low": "🟡", "empty": "🔴"}
    cols = st.columns(max(len(tanks), 1))
    for col, t in zip(cols, tanks):
        with col:
            st.metric(f"{icons[t['status']]} {t['tank_number']} · {t['product']}", f"{t['current_stock']:,.0f} L",
                      f"{t['fill_percentage']:.1f}%", delta_color="off")

    if due:
        st.markdown("#### 🧰 Calibration due")
        for d in due:
            when = "expired" if d["expired"] else f"in {d['days_left']} day(s)"
            st.warning(f"{d['unit']} nozzle {d['nozzle_number']}: valid until {d['valid_until']} ({when})")


def render() -> None:
    header("Home")

    user = current_user()
    if user is None:
        _login_card()
        return

    _dashboard(user)
