# outlet_manager.py
"""
Outlet setup utilities for FPMS: the outlet itself, products, tanks,
dispensing units, nozzles and staff.
"""

from datetime import date
from typing import Optional, List, Dict
from sqlalchemy.orm import Session
from models import (
    RetailOutlet, Product, FuelType, Tank, DispensingUnit, Nozzle, Staff, StaffRole,
)
from logger import log_info
from recycle_bin import RecycleBinManager
from security import SecurityManager


def _product_dict(p: Product) -> Dict:
    return {
        "id": p.id,
        "name": p.name,
        "fuel_type": p.fuel_type.value,
        "price_per_liter": p.price_per_liter,
        "is_active": p.is_active,
    }


def _tank_dict(t: Tank) -> Dict:
    return {
        "id": t.id,
        "tank_number": t.tank_number,
        "product_id": t.product_id,
        "capacity": t.capacity,
        "current_stock": t.current_stock,
        "minimum_level": t.minimum_level,
        "length_m": t.length_m,
        "diameter_m": t.diameter_m,
        "is_active": t.is_active,
    }


def _nozzle_dict(n: Nozzle) -> Dict:
    return {
        "id": n.id,
        "dispensing_unit_id": n.dispensing_unit_id,
        "tank_id": n.tank_id,
        "product_id": n.product_id,
        "nozzle_number": n.nozzle_number,
        "calibration_valid_until": n.calibration_valid_until,
        "is_active": n.is_active,
    }


def _staff_dict(s: Staff) -> Dict:
    return {
        "id": s.id,
        "name": s.name,
        "phone_number": s.phone_number,
        "role": s.role.value,
        "is_active": s.is_active,
    }


class OutletManager:
    """Handles outlet setup CRUD operations"""

    # ------------- outlet -------------
    @staticmethod
    def create_outlet(
        session: Session,
        owner_id: int,
        name: str,
        sap_code: Optional[str] = None,
        oil_company: Optional[str] = None,
        address: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Dict:
        """
        Create a retail outlet for a dealer.
        Returns a dictionary (not the ORM object) to avoid session detachment issues.
        """
        if not (name or "").strip():
            raise ValueError("Outlet name is required")

        outlet = RetailOutlet(
            owner_id=owner_id,
            name=name.strip(),
            sap_code=sap_code,
            oil_company=oil_company,
            address=address,
            phone_number=phone_number,
        )
        session.add(outlet)
        session.commit()
        log_info(f"Outlet created: {outlet.name} (id={outlet.id})")

        return {
            "id": outlet.id,
            "name": outlet.name,
            "sap_code": outlet.sap_code,
            "oil_company": outlet.oil_company,
            "address": outlet.address,
            "phone_number": outlet.phone_number,
        }

    @staticmethod
    def get_outlet(session: Session, outlet_id: int) -> Optional[RetailOutlet]:
        return session.query(RetailOutlet).filter(RetailOutlet.id == outlet_id).one_or_none()

    @staticmethod
    def update_outlet(session: Session, outlet_id: int, **fields) -> Dict:
        outlet = OutletManager.get_outlet(session, outlet_id)
        if not outlet:
            raise ValueError(f"Outlet ID {outlet_id} not found")

        for key in ("name", "sap_code", "oil_company", "address", "phone_number"):
            if fields.get(key) is not None:
                setattr(outlet, key, fields[key])
        session.commit()

        return {"id": outlet.id, "name": outlet.name, "sap_code": outlet.sap_code}

    # ------------- products -------------
    @staticmethod
    def create_product(
        session: Session,
        outlet_id: int,
        name: str,
        fuel_type: str,
        price_per_liter: float = 0.0,
    ) -> Dict:
        name = (name or "").strip()
        if not name:
            raise ValueError("Product name is required")
        try:
            ftype = FuelType(str(fuel_type).lower())
        except ValueError:
            raise ValueError(f"Unknown fuel type '{fuel_type}'") from None
        if price_per_liter is not None and price_per_liter < 0:
            raise ValueError("Price per liter cannot be negative")

        existing = session.query(Product).filter(
            Product.retail_outlet_id == outlet_id,
            Product.name == name,
        ).first()
        if existing:
            raise ValueError(f"Product '{name}' already exists")

        product = Product(
            retail_outlet_id=outlet_id,
            name=name,
            fuel_type=ftype,
            price_per_liter=price_per_liter or 0.0,
            is_active=True,
        )
        session.add(product)
        session.commit()
        return _product_dict(product)

    @staticmethod
    def get_products(session: Session, outlet_id: int, active_only: bool = True) -> List[Product]:
        query = session.query(Product).filter(Product.retail_outlet_id == outlet_id)
        if active_only:
            query = query.filter(Product.is_active == True)  # noqa: E712
        return query.order_by(Product.name).all()

    @staticmethod
    def update_product(
        session: Session,
        outlet_id: int,
        product_id: int,
        name: Optional[str] = None,
        price_per_liter: Optional[float] = None,
        is_active: Optional[bool] = None,
    ) -> Dict:
        product = session.query(Product).filter(
            Product.retail_outlet_id == outlet_id, Product.id == product_id
        ).one_or_none()
        if not product:
            raise ValueError(f"Product ID {product_id} not found")

        if name:
            product.name = name.strip()
        if price_per_liter is not None:
            if price_per_liter < 0:
                raise ValueError("Price per liter cannot be negative")
            product.price_per_liter = price_per_liter
        if is_active is not None:
            product.is_active = is_active
        session.commit()
        return _product_dict(product)

    # ------------- tanks -------------
    @staticmethod
    def create_tank(
        session: Session,
        outlet_id: int,
        tank_number: str,
        product_id: int,
        capacity: float,
        current_stock: float = 0.0,
        minimum_level: float = 500.0,
        length_m: Optional[float] = None,
        diameter_m: Optional[float] = None,
    ) -> Dict:
        tank_number = (tank_number or "").strip()
        if not tank_number:
            raise ValueError("Tank number is required")
        if capacity is None or capacity <= 0:
            raise ValueError("Tank capacity must be greater than zero")
        if current_stock and current_stock > capacity:
            raise ValueError("Current stock cannot exceed tank capacity")

        product = session.query(Product).filter(
            Product.retail_outlet_id == outlet_id, Product.id == product_id
        ).one_or_none()
        if not product:
            raise ValueError(f"Product ID {product_id} not found")

        existing = session.query(Tank).filter(
            Tank.retail_outlet_id == outlet_id,
            Tank.tank_number == tank_number,
        ).first()
        if existing:
            raise ValueError(f"Tank number '{tank_number}' already exists")

        tank = Tank(
            retail_outlet_id=outlet_id,
            product_id=product_id,
            tank_number=tank_number,
            capacity=capacity,
            current_stock=current_stock or 0.0,
            minimum_level=minimum_level,
            length_m=length_m,
            diameter_m=diameter_m,
            is_active=True,
        )
        session.add(tank)
        session.commit()
        return _tank_dict(tank)

    @staticmethod
    def update_tank(session: Session, outlet_id: int, tank_id: int, **fields) -> Dict:
        tank = session.query(Tank).filter(
            Tank.retail_outlet_id == outlet_id, Tank.id == tank_id
        ).one_or_none()
        if not tank:
            raise ValueError(f"Tank ID {tank_id} not found")

        new_number = fields.get("tank_number")
        if new_number and new_number != tank.tank_number:
            clash = session.query(Tank).filter(
                Tank.retail_outlet_id == outlet_id,
                Tank.tank_number == new_number,
                Tank.id != tank_id,
            ).first()
            if clash:
                raise ValueError(f"Tank number '{new_number}' already exists")

        for key in ("tank_number", "capacity", "current_stock", "minimum_level",
                    "length_m", "diameter_m", "is_active"):
            if fields.get(key) is not None:
                setattr(tank, key, fields[key])

        if tank.current_stock and tank.capacity and tank.current_stock > tank.capacity:
            session.rollback()
            raise ValueError("Current stock cannot exceed tank capacity")

        session.commit()
        return _tank_dict(tank)

    # ------------- dispensing units -------------
    @staticmethod
    def create_dispensing_unit(
        session: Session,
        outlet_id: int,
        name: str,
        brand: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Dict:
        name = (name or "").strip()
        if not name:
            raise ValueError("Dispensing unit name is required")

        existing = session.query(DispensingUnit).filter(
            DispensingUnit.retail_outlet_id == outlet_id,
            DispensingUnit.name == name,
        ).first()
        if existing:
            raise ValueError(f"Dispensing unit '{name}' already exists")

        unit = DispensingUnit(retail_outlet_id=outlet_id, name=name, brand=brand, model=model, is_active=True)
        session.add(unit)
        session.commit()
        return {"id": unit.id, "name": unit.name, "brand": unit.brand, "model": unit.model}

    @staticmethod
    def get_dispensing_units(session: Session, outlet_id: int) -> List[DispensingUnit]:
        return session.query(DispensingUnit).filter(
            DispensingUnit.retail_outlet_id == outlet_id
        ).order_by(DispensingUnit.name).all()

    # ------------- nozzles -------------
    @staticmethod
    def create_nozzle(
        session: Session,
        outlet_id: int,
        dispensing_unit_id: int,
        tank_id: int,
        nozzle_number: int,
        calibration_valid_until: Optional[date] = None,
    ) -> Dict:
        """
        Attach a nozzle to a dispensing unit. The nozzle sells whatever
        product its tank holds.
        """
        unit = session.query(DispensingUnit).filter(
            DispensingUnit.retail_outlet_id == outlet_id,
            DispensingUnit.id == dispensing_unit_id,
        ).one_or_none()
        if not unit:
            raise ValueError(f"Dispensing unit ID {dispensing_unit_id} not found")

        tank = session.query(Tank).filter(
            Tank.retail_outlet_id == outlet_id, Tank.id == tank_id
        ).one_or_none()
        if not tank:
            raise ValueError(f"Tank ID {tank_id} not found")

        if nozzle_number is None or int(nozzle_number) <= 0:
            raise ValueError("Nozzle number must be a positive integer")

        existing = session.query(Nozzle).filter(
            Nozzle.dispensing_unit_id == dispensing_unit_id,
            Nozzle.nozzle_number == int(nozzle_number),
        ).first()
        if existing:
            raise ValueError(f"Nozzle {nozzle_number} already exists on {unit.name}")

        nozzle = Nozzle(
            dispensing_unit_id=dispensing_unit_id,
            tank_id=tank.id,
            product_id=tank.product_id,
            nozzle_number=int(nozzle_number),
            calibration_valid_until=calibration_valid_until,
            is_active=True,
        )
        session.add(nozzle)
        session.commit()
        return _nozzle_dict(nozzle)

    @staticmethod
    def update_nozzle(
        session: Session,
        outlet_id: int,
        nozzle_id: int,
        tank_id: Optional[int] = None,
        calibration_valid_until: Optional[date] = None,
        is_active: Optional[bool] = None,
    ) -> Dict:
        nozzle = session.query(Nozzle).join(
            DispensingUnit, Nozzle.dispensing_unit_id == DispensingUnit.id
        ).filter(
            DispensingUnit.retail_outlet_id == outlet_id, Nozzle.id == nozzle_id
        ).one_or_none()
        if not nozzle:
            raise ValueError(f"Nozzle ID {nozzle_id} not found")

        if tank_id is not None:
            tank = session.query(Tank).filter(
                Tank.retail_outlet_id == outlet_id, Tank.id == tank_id
            ).one_or_none()
            if not tank:
                raise ValueError(f"Tank ID {tank_id} not found")
            nozzle.tank_id = tank.id
            nozzle.product_id = tank.product_id
        if calibration_valid_until is not None:
            nozzle.calibration_valid_until = calibration_valid_until
        if is_active is not None:
            nozzle.is_active = is_active

        session.commit()
        return _nozzle_dict(nozzle)

    # ------------- staff -------------
    @staticmethod
    def create_staff(
        session: Session,
        outlet_id: int,
        name: str,
        role: str,
        phone_number: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Dict:
        """
        Add a manager or attendant. Managers need a phone number and a
        password (they log in); attendants never do.
        """
        from auth import AuthManager

        name = (name or "").strip()
        if not name:
            raise ValueError("Staff name is required")
        try:
            staff_role = StaffRole(str(role).lower())
        except ValueError:
            raise ValueError("Invalid role. Must be manager or attendant") from None

        password_hash = None
        if staff_role == StaffRole.MANAGER:
            if not phone_number:
                raise ValueError("Managers need a phone number to log in")
            is_valid, error_msg = SecurityManager.validate_password_strength(password or "")
            if not is_valid:
                raise ValueError(error_msg)
            clash = session.query(Staff).filter(
                Staff.phone_number == phone_number,
                Staff.role == StaffRole.MANAGER,
            ).first()
            if clash:
                raise ValueError(f"Phone number '{phone_number}' is already used by a manager")
            password_hash = AuthManager.hash_password(password)

        staff = Staff(
            retail_outlet_id=outlet_id,
            name=name,
            phone_number=phone_number,
            role=staff_role,
            password_hash=password_hash,
            is_active=True,
        )
        session.add(staff)
        session.commit()
        return _staff_dict(staff)

    @staticmethod
    def get_staff(session: Session, outlet_id: int, role: Optional[str] = None,
                  active_only: bool = False) -> List[Staff]:
        query = session.query(Staff).filter(Staff.retail_outlet_id == outlet_id)
        if role:
            query = query.filter(Staff.role == StaffRole(role))
        if active_only:
            query = query.filter(Staff.is_active == True)  # noqa: E712
        return query.order_by(Staff.role, Staff.name).all()

    @staticmethod
    def toggle_staff_status(session: Session, outlet_id: int, staff_id: int) -> Dict:
        staff = session.query(Staff).filter(
            Staff.retail_outlet_id == outlet_id, Staff.id == staff_id
        ).one_or_none()
        if not staff:
            raise ValueError(f"Staff ID {staff_id} not found")

        staff.is_active = not staff.is_active
        session.commit()
        return _staff_dict(staff)

    # ------------- deletes -------------
    _DELETABLE = {
        "Product": Product,
        "Tank": Tank,
        "DispensingUnit": DispensingUnit,
        "Staff": Staff,
    }

    @staticmethod
    def delete_record(
        session: Session,
        outlet_id: int,
        resource_type: str,
        record_id: int,
        username: str,
        reason: Optional[str] = None,
    ) -> Dict:
        """
        Archive a setup record to the recycle bin and remove it.
        Products with tanks, and tanks or units with nozzles, are refused.
        """
        if resource_type == "Nozzle":
            record = session.query(Nozzle).join(
                DispensingUnit, Nozzle.dispensing_unit_id == DispensingUnit.id
            ).filter(DispensingUnit.retail_outlet_id == outlet_id, Nozzle.id == record_id).one_or_none()
        else:
            model = OutletManager._DELETABLE.get(resource_type)
            if model is None:
                raise ValueError(f"Cannot delete resource type '{resource_type}'")
            record = session.query(model).filter(
                model.retail_outlet_id == outlet_id, model.id == record_id
            ).one_or_none()
        if not record:
            raise ValueError(f"{resource_type} ID {record_id} not found")

        if resource_type == "Product" and session.query(Tank).filter(Tank.product_id == record_id).count():
            raise ValueError("Product is still stored in a tank")
        if resource_type == "Tank" and record.nozzles.count():
            raise ValueError("Tank still has nozzles attached")
        if resource_type == "DispensingUnit" and record.nozzles.count():
            raise ValueError("Dispensing unit still has nozzles attached")

        label = str(getattr(record, "name", None) or getattr(record, "tank_number", None) or record_id)
        entry = RecycleBinManager.archive_record(
            session, record, resource_type, username,
            outlet_id=outlet_id, reason=reason, label=label,
        )
        session.commit()

        SecurityManager.log_audit(
            session, username, "DELETE", resource_type=resource_type,
            resource_id=record_id, details=reason or f"Archived {label}", outlet_id=outlet_id,
        )
        return {"resource_type": resource_type, "id": record_id, "label": label, "bin_entry_id": entry.id}
