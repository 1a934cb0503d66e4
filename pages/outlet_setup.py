"""
Outlet Setup page (dealer only): outlet details, products, tanks,
dispensing units and nozzles.
"""
from __future__ import annotations

import pandas as pd
import streamlit as st

from auth import AuthManager
from db import get_session
from models import FuelType
from outlet_manager import OutletManager
from pages.helpers import current_user, current_username, require_permission, st_safe_rerun
from permission_manager import PermissionManager
from shift_ledger import ShiftLedger
from ui import header


def _new_outlet(user) -> None:
    with st.form("outlet_new_form"):
        st.markdown("#### ➕ New outlet")
        name = st.text_input("Outlet name")
        c1, c2 = st.columns(2)
        sap_code = c1.text_input("SAP code")
        oil_company = c2.text_input("Oil company")
        address = st.text_area("Address")
        phone = st.text_input("Phone number")
        if st.form_submit_button("Create outlet", type="primary"):
            try:
                with get_session() as s:
                    outlet = OutletManager.create_outlet(s, user["id"], name, sap_code or None,
                                                         oil_company or None, address or None, phone or None)
                    user["outlets"] = AuthManager.get_dealer_outlets(s, user["id"])
            except ValueError as e:
                st.error(str(e))
                return
            st.session_state.active_outlet_id = outlet["id"]
            st.success(f"Outlet '{outlet['name']}' created.")
            st_safe_rerun()


def _products(outlet_id: int) -> None:
    with get_session() as s:
        products = OutletManager.get_products(s, outlet_id, active_only=False)
        rows = [{"ID": p.id, "Name": p.name, "Fuel": p.fuel_type.value, "Price/L": p.price_per_liter,
                 "Active": p.is_active} for p in products]
    if rows:
        st.dataframe(pd.DataFrame(rows), width="stretch", hide_index=True)

    with st.form("product_form"):
        c1, c2, c3 = st.columns(3)
        name = c1.text_input("Product name")
        fuel = c2.selectbox("Fuel type", [f.value for f in FuelType])
        price = c3.number_input("Default price / L", min_value=0.0, step=0.01)
        if st.form_submit_button("Add product"):
            try:
                with get_session() as s:
                    OutletManager.create_product(s, outlet_id, name, fuel, price)
            except ValueError as e:
                st.error(str(e))
            else:
                st_safe_rerun()


def _tanks(outlet_id: int) -> None:
    with get_session() as s:
        tanks = ShiftLedger.list_tanks(s, outlet_id, active_only=False)
        products = {p.id: p.name for p in OutletManager.get_products(s, outlet_id)}
        rows = [{"ID": t.id, "Tank": t.tank_number, "Product": t.product.name if t.product else "",
                 "Capacity": t.capacity, "Stock": t.current_stock, "Min level": t.minimum_level,
                 "Active": t.is_active} for t in tanks]
    if rows:
        st.dataframe(pd.DataFrame(rows), width="stretch", hide_index=True)
    if not products:
        st.info("Add a product first.")
        return

    with st.form("tank_form"):
        c1, c2, c3, c4 = st.columns(4)
        number = c1.text_input("Tank number")
        product_id = c2.selectbox("Product", list(products), format_func=products.get)
        capacity = c3.number_input("Capacity (L)", min_value=0.0, step=100.0)
        stock = c4.number_input("Current stock (L)", min_value=0.0, step=100.0)
        if st.form_submit_button("Add tank"):
            try:
                with get_session() as s:
                    OutletManager.create_tank(s, outlet_id, number, product_id, capacity, stock)
            except ValueError as e:
                st.error(str(e))
            else:
                st_safe_rerun()


def _units_and_nozzles(outlet_id: int) -> None:
    with get_session() as s:
        units = {u.id: u.name for u in OutletManager.get_dispensing_units(s, outlet_id)}
        tanks = {t.id: f"{t.tank_number} · {t.product.name if t.product else ''}"
                 for t in ShiftLedger.list_tanks(s, outlet_id)}
        nozzles = [{"ID": n.id, "Unit": n.dispensing_unit.name, "Nozzle": n.nozzle_number,
                    "Tank": n.tank.tank_number if n.tank else "", "Product": n.product.name if n.product else "",
                    "Calibration valid until": n.calibration_valid_until, "Active": n.is_active}
                   for n in ShiftLedger.list_nozzles(s, outlet_id, active_only=False)]

    with st.form("unit_form"):
        c1, c2, c3 = st.columns(3)
        name = c1.text_input("Unit name")
        brand = c2.text_input("Brand")
        model = c3.text_input("Model")
        if st.form_submit_button("Add dispensing unit"):
            try:
                with get_session() as s:
                    OutletManager.create_dispensing_unit(s, outlet_id, name, brand or None, model or None)
            except ValueError as e:
                st.error(str(e))
            else:
                st_safe_rerun()

    if nozzles:
        st.dataframe(pd.DataFrame(nozzles), width="stretch", hide_index=True)
    if not units or not tanks:
        st.info("Add a dispensing unit and a tank before adding nozzles.")
        return

    with st.form("nozzle_form"):
        c1, c2, c3, c4 = st.columns(4)
        unit_id = c1.selectbox("Unit", list(units), format_func=units.get)
        tank_id = c2.selectbox("Tank", list(tanks), format_func=tanks.get)
        number = c3.number_input("Nozzle number", min_value=1, step=1)
        valid_until = c4.date_input("Calibration valid until", value=None)
        if st.form_submit_button("Add nozzle"):
            try:
                with get_session() as s:
                    OutletManager.create_nozzle(s, outlet_id, unit_id, tank_id, int(number), valid_until)
            except ValueError as e:
                st.error(str(e))
            else:
                st_safe_rerun()


def _delete(outlet_id: int) -> None:
    with st.expander("🗑️ Delete a setup record"):
        c1, c2 = st.columns(2)
        resource_type = c1.selectbox("Type", ["Product", "Tank", "DispensingUnit", "Nozzle"], key="setup_del_type")
        record_id = c2.number_input("ID", min_value=1, step=1, key="setup_del_id")
        reason = st.text_input("Reason", key="setup_del_reason")
        if st.button("Delete", key="setup_del_btn"):
            try:
                with get_session() as s:
                    result = OutletManager.delete_record(s, outlet_id, resource_type, int(record_id),
                                                         current_username(), reason or None)
            except ValueError as e:
                st.error(str(e))
            else:
                st.success(f"{result['label']} moved to the recycle bin.")


def render() -> None:
    header("Outlet Setup")
    user = current_user() or {}
    require_permission(PermissionManager.can_configure_outlet(user), "Only dealers can configure outlets.")

    outlet_id = st.session_state.get("active_outlet_id")
    if not outlet_id:
        _new_outlet(user)
        return

    tabs = st.tabs(["Products", "Tanks", "Units & Nozzles", "New outlet"])
    with tabs[0]:
        _products(outlet_id)
    with tabs[1]:
        _tanks(outlet_id)
    with tabs[2]:
        _units_and_nozzles(outlet_id)
    with tabs[3]:
        _new_outlet(user)
    _delete(outlet_id)
