"""
Readings page: one form per nozzle per shift (opening, closing, testing and
the payment split), plus the shift's reading list with per-reading proceeds.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from db import get_session
from logger import log_error
from outlet_config import OutletConfig
from pages.helpers import (
    current_user, current_username, money, require_outlet, require_permission,
    shift_picker, st_safe_rerun,
)
from permission_manager import PermissionManager
from reconciliation import ReadingValidationError, ShiftLockedError
from shift_ledger import ShiftLedger
from shift_service import ShiftService
from ui import header


def _reading_form(service: ShiftService, outlet_id: int, shift_type, shift_date, locked: bool) -> None:
    with get_session() as s:
        nozzles = ShiftLedger.list_nozzles(s, outlet_id)
        attendants = ShiftLedger.list_attendants(s, outlet_id)
        nozzle_labels = {
            n.id: f"{n.dispensing_unit.name} · N{n.nozzle_number} · {n.product.name if n.product else ''}"
            for n in nozzles
        }
        attendant_labels = {a.id: a.name for a in attendants}

    if not nozzle_labels or not attendant_labels:
        st.info("Add nozzles and attendants under Outlet Setup / Staff first.")
        return

    nozzle_id = st.selectbox("Nozzle", list(nozzle_labels), format_func=nozzle_labels.get, key="rd_nozzle")
    with get_session() as s:
        defaults = ShiftService(s, outlet_id, service.username).reading_form_defaults(nozzle_id, shift_type, shift_date)

    if defaults["existing"]:
        st.info("✏️ This nozzle already has a reading for the shift; saving updates it.")
    if not defaults["opening_verified"]:
        st.warning("⚠️ Unverified opening: no earlier reading for this nozzle. Enter the opening meter value.")

    attendant_ids = list(attendant_labels)
    att_index = attendant_ids.index(defaults["attendant_id"]) if defaults["attendant_id"] in attendant_ids else 0

    # keyed per nozzle and shift
    slot = f"{nozzle_id}_{shift_type.value}_{shift_date.isoformat()}"
    with st.form("reading_form"):
        attendant_id = st.selectbox("Attendant", attendant_ids, index=att_index,
                                    format_func=attendant_labels.get, key=f"rd_attendant_{slot}")
        c1, c2, c3 = st.columns(3)
        previous = c1.text_input("Opening reading", value="" if defaults["previous_reading"] is None
                                 else f"{defaults['previous_reading']}", key=f"rd_prev_{slot}",
                                 disabled=defaults["opening_verified"])
        current = c2.text_input("Closing reading", value="" if defaults["current_reading"] is None
                                else f"{defaults['current_reading']}", key=f"rd_curr_{slot}")
        testing = c3.number_input("Testing (L)", min_value=0.0, value=float(defaults["testing"]),
                                  step=0.5, key=f"rd_test_{slot}")

        pay_cols = st.columns(len(OutletConfig.PAYMENT_METHODS))
        payments = {}
        for col, method in zip(pay_cols, OutletConfig.PAYMENT_METHODS):
            payments[f"{method}_sales"] = col.number_input(
                OutletConfig.PAYMENT_LABELS[method], min_value=0.0,
                value=float(defaults[f"{method}_sales"]), step=1.0, key=f"rd_{method}_{slot}",
            )

        submitted = st.form_submit_button("💾 Save reading", type="primary", disabled=locked)

    if not submitted:
        return

    form = {
        "nozzle_id": nozzle_id,
        "attendant_id": attendant_id,
        "previous_reading": previous,
        "current_reading": current,
        "testing": testing,
        **payments,
    }
    try:
        with get_session() as s:
            _row, proceeds = ShiftService(s, outlet_id, service.username).record_reading(form, shift_type, shift_date)
    except ReadingValidationError as e:
        st.error(f"Please fill in: {', '.join(e.missing)}")
        return
    except ShiftLockedError as e:
        st.error(f"🔒 {e}")
        return
    except ValueError as e:
        log_error(f"Reading save failed: {e}")
        st.error(str(e))
        return

    st.success(
        f"Saved. {proceeds.liters_sold:,.2f} L sold · {proceeds.label} {money(proceeds.display_amount)}"
    )
    if not proceeds.rate_available:
        st.warning("⚠️ Rate unavailable for this product and shift; calculated proceeds are 0.")
    if proceeds.liters_sold < 0:
        st.warning("⚠️ Closing reading is below opening + testing. Check the meter values.")


def _reading_list(outlet_id: int, shift_type, shift_date, locked: bool) -> None:
    with get_session() as s:
        service = ShiftService(s, outlet_id, current_username())
        details = service.reading_details(shift_type, shift_date)
        nozzle_labels = {
            n.id: f"{n.dispensing_unit.name} · N{n.nozzle_number}"
            for n in ShiftLedger.list_nozzles(s, outlet_id, active_only=False)
        }

    if not details:
        st.info("No readings for this shift yet.")
        return

    df = pd.DataFrame([{
        "ID": r.id,
        "Nozzle": nozzle_labels.get(r.nozzle_id, r.nozzle_id),
        "Attendant": r.attendant_name,
        "Opening": r.previous_reading,
        "Closing": r.current_reading,
        "Testing": r.testing,
        "Liters": round(p.liters_sold, 2),
        "Rate": p.rate if p.rate_available else None,
        "Calculated": round(p.calculated, 2),
        "Actual": round(p.actual, 2),
        "Status": p.label if p.rate_available else f"{p.label} (rate unavailable)",
        "Amount": round(p.display_amount, 2),
    } for r, p in details])
    st.dataframe(df, width="stretch", hide_index=True)

    if locked or not PermissionManager.can_delete_entries(current_user() or {}):
        return

    with st.expander("🗑️ Delete a reading"):
        reading_id = st.selectbox("Reading", df["ID"].tolist(), key="rd_delete_id")
        reason = st.text_input("Reason", key="rd_delete_reason")
        if st.button("Delete", key="rd_delete_btn"):
            try:
                with get_session() as s:
                    ShiftService(s, outlet_id, current_username()).delete_reading(int(reading_id), reason or None)
            except ValueError as e:
                st.error(str(e))
                return
            st.success("Reading moved to the recycle bin.")
            st_safe_rerun()


def render() -> None:
    header("Readings")
    require_permission(PermissionManager.can_make_entries(current_user() or {}),
                       "Only outlet managers can enter readings.")
    outlet_id = require_outlet()

    shift_type, shift_date = shift_picker("readings")
    with get_session() as s:
        service = ShiftService(s, outlet_id, current_username())
        lock = service.edit_lock(shift_type, shift_date)

    if not lock.editable:
        st.error(
            f"🔒 This shift is locked: the {OutletConfig.shift_label(lock.blocking_shift.value)} "
            f"shift already has {lock.next_shift_readings} reading(s)."
        )

    _reading_form(service, outlet_id, shift_type, shift_date, locked=not lock.editable)
    st.markdown("#### Readings this shift")
    _reading_list(outlet_id, shift_type, shift_date, locked=not lock.editable)
