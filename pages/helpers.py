"""
Helper functions shared across Streamlit page modules.

Login context, the (shift type, date) picker and a rerun wrapper. Pages
import these instead of reaching into each other.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Tuple

import streamlit as st

from models import ShiftType
from outlet_config import OutletConfig
from timezone_utils import local_today


def st_safe_rerun() -> None:
    """Trigger a rerun of the Streamlit app (older releases only have experimental_rerun)."""
    rerun = getattr(st, "rerun", None) or st.experimental_rerun
    rerun()


def current_user() -> Optional[Dict]:
    return st.session_state.get("auth_user")


def current_username() -> str:
    user = current_user() or {}
    return user.get("email") or user.get("name") or "unknown"


def require_outlet() -> int:
    """Active outlet id, or stop the page with an error."""
    outlet_id = st.session_state.get("active_outlet_id")
    if not outlet_id:
        st.error("⚠️ No active outlet selected. Please log in or pick an outlet first.")
        st.stop()
    return outlet_id


def require_permission(allowed: bool, message: str = "You do not have access to this page.") -> None:
    if not allowed:
        st.error(f"🔒 {message}")
        st.stop()


def shift_picker(key: str) -> Tuple[ShiftType, date]:
    """
    Shift type + date selector. The chosen pair is remembered across pages
    and returned so callers pass it explicitly to every service call.
    """
    options = OutletConfig.shift_options()
    saved_type = st.session_state.get("selected_shift_type") or options[0]
    saved_date = st.session_state.get("selected_shift_date") or local_today()

    c1, c2 = st.columns(2)
    with c1:
        shift_value = st.selectbox(
            "Shift",
            options,
            index=options.index(saved_type),
            format_func=OutletConfig.shift_label,
            key=f"{key}_shift_type",
        )
    with c2:
        shift_date = st.date_input("Shift date", value=saved_date, key=f"{key}_shift_date")

    st.session_state["selected_shift_type"] = shift_value
    st.session_state["selected_shift_date"] = shift_date
    return ShiftType(shift_value), shift_date


def money(amount: float) -> str:
    return OutletConfig.format_currency(amount or 0.0)
