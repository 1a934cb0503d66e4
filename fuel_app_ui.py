# fuel_app_ui.py
import streamlit as st

from db import init_db
from pages.helpers import current_user, st_safe_rerun
from permission_manager import PermissionManager

init_db()
st.set_page_config(page_title="FPMS", page_icon="⛽", layout="wide")
st.session_state.setdefault("auth_user", None)
st.session_state.setdefault("active_outlet_id", None)

PAGE_OPTIONS = PermissionManager.allowed_pages(current_user())
_initial_page = st.session_state.get("page")
if _initial_page not in PAGE_OPTIONS:
    _initial_page = PAGE_OPTIONS[0]
page = st.sidebar.selectbox("Page", PAGE_OPTIONS, index=PAGE_OPTIONS.index(_initial_page), key="_nav_page_select")
st.session_state["page"] = page

if current_user() and st.sidebar.button("🚪 Logout", key="_nav_logout"):
    st.session_state.auth_user = None
    st.session_state.active_outlet_id = None
    st.session_state["page"] = "Home"
    st_safe_rerun()

if page == "Home":
    from pages.home import render as render_home
    render_home()
    st.stop()
elif page == "Shift & Rates":
    from pages.shift_rates import render as render_shift_rates
    render_shift_rates()
    st.stop()
elif page == "Readings":
    from pages.readings import render as render_readings
    render_readings()
    st.stop()
elif page == "Stock":
    from pages.stock import render as render_stock
    render_stock()
    st.stop()
elif page == "Summary":
    from pages.summary import render as render_summary
    render_summary()
    st.stop()
elif page == "Outlet Setup":
    from pages.outlet_setup import render as render_outlet_setup
    render_outlet_setup()
    st.stop()
elif page == "Staff":
    from pages.staff import render as render_staff
    render_staff()
    st.stop()
elif page == "Reports":
    from pages.reports import render as render_reports
    render_reports()
    st.stop()
