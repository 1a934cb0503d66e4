"""
Reports page (dealer only): sales trend, payment mix, audit trail and the
recycle bin for the active outlet.
"""
from __future__ import annotations

from datetime import timedelta

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from dashboard_utils import DashboardMetrics
from db import get_session
from outlet_config import OutletConfig
from pages.helpers import (
    current_user, current_username, money, require_outlet, require_permission, st_safe_rerun,
)
from permission_manager import PermissionManager
from reconciliation import ShiftLockedError
from recycle_bin import RecycleBinManager
from security import SecurityManager
from timezone_utils import format_local_datetime, local_today
from ui import header


def _sales(outlet_id: int) -> None:
    today = local_today()
    c1, c2 = st.columns(2)
    date_from = c1.date_input("From", value=today - timedelta(days=OutletConfig.REPORT_MONTH_DAYS - 1),
                              key="rep_from")
    date_to = c2.date_input("To", value=today, key="rep_to")
    if date_from > date_to:
        st.error("'From' date must be on or before 'To' date.")
        return

    with get_session() as s:
        totals = DashboardMetrics.get_sales_totals(s, outlet_id, date_from, date_to)
        daily = DashboardMetrics.daily_sales(s, outlet_id, date_from, date_to)

    m1, m2 = st.columns(2)
    m1.metric("Total sales", money(totals["total"]))
    m2.metric("Readings", totals["readings"])

    if daily:
        df = pd.DataFrame(daily)
        fig = go.Figure(go.Bar(x=df["date"], y=df["total_sale"], marker_color="#1f4788"))
        fig.update_layout(title="Daily sales", height=340, margin=dict(l=20, r=20, t=40, b=20))
        st.plotly_chart(fig, width="stretch")

    mix = DashboardMetrics.payment_mix(totals)
    if totals["total"] > 0:
        pie = go.Figure(go.Pie(
            labels=[OutletConfig.PAYMENT_LABELS[m] for m in mix],
            values=[totals[m] for m in mix],
            hole=0.45,
        ))
        pie.update_layout(title="Payment mix", height=320, margin=dict(l=20, r=20, t=40, b=20))
        st.plotly_chart(pie, width="stretch")
    else:
        st.info("No sales in this period.")


def _audit(outlet_id: int) -> None:
    with get_session() as s:
        logs = SecurityManager.recent_audit(s, outlet_id, limit=200)
        rows = [{
            "Time": format_local_datetime(a.timestamp, "%d-%b-%Y %H:%M"),
            "User": a.username,
            "Action": a.action,
            "Resource": a.resource_type,
            "ID": a.resource_id,
            "Details": a.details,
            "OK": a.success,
        } for a in logs]
    if rows:
        st.dataframe(pd.DataFrame(rows), width="stretch", hide_index=True)
    else:
        st.info("No audit entries yet.")


def _recycle_bin(outlet_id: int) -> None:
    with get_session() as s:
        entries = RecycleBinManager.list_entries(s, outlet_id)
        rows = [{
            "Deleted": format_local_datetime(e.deleted_at, "%d-%b-%Y %H:%M"),
            "Type": e.resource_type,
            "Record": e.resource_label,
            "By": e.deleted_by,
            "Reason": e.reason,
            "payload": RecycleBinManager.load_payload(e),
            "entry_id": e.id,
        } for e in entries]
    if not rows:
        st.info("Recycle bin is empty.")
        return
    st.dataframe(pd.DataFrame(rows).drop(columns=["payload", "entry_id"]), width="stretch", hide_index=True)
    with st.expander("Archived payloads"):
        for r in rows:
            st.markdown(f"**{r['Type']} · {r['Record']}**")
            st.json(r["payload"])

    choices = {f"#{r['entry_id']} {r['Type']} · {r['Record']}": r["entry_id"] for r in rows}
    picked = st.selectbox("Restore record", list(choices), key="bin_restore_pick")
    if st.button("Restore", key="bin_restore_btn"):
        with get_session() as s:
            try:
                RecycleBinManager.restore_entry(s, outlet_id, choices[picked], current_username())
            except ShiftLockedError as e:
                st.error(f"🔒 {e}")
                return
            except ValueError as e:
                st.error(str(e))
                return
        st.success("Record restored.")
        st_safe_rerun()


def render() -> None:
    header("Reports")
    require_permission(PermissionManager.can_view_reports(current_user() or {}), "Reports are for dealers.")
    outlet_id = require_outlet()

    tabs = st.tabs(["Sales", "Audit log", "Recycle bin"])
    with tabs[0]:
        _sales(outlet_id)
    with tabs[1]:
        _audit(outlet_id)
    with tabs[2]:
        _recycle_bin(outlet_id)
