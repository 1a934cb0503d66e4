# models.py
"""
Database models for FPMS (Fuel Point Management System)
Single-dealer retail outlets: setup masters, shift-scoped readings, rates and stock
"""

from datetime import datetime
import enum

from sqlalchemy import (
    Column, Integer, Float, String, Date, DateTime, Boolean, Text,
    ForeignKey, Enum as SAEnum, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

# ============================================================================
# ENUMS
# ============================================================================

class ShiftType(enum.Enum):
    MORNING = "morning"
    EVENING = "evening"
    NIGHT = "night"

class FuelType(enum.Enum):
    PETROL = "petrol"
    DIESEL = "diesel"
    PREMIUM = "premium"

class StaffRole(enum.Enum):
    MANAGER = "manager"
    ATTENDANT = "attendant"

# ============================================================================
# DEALER & OUTLET
# ============================================================================

class User(Base):
    """Dealer (outlet owner) accounts"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(150), unique=True, nullable=False)
    password_hash = Column(String(250), nullable=False)
    full_name = Column(String(150), nullable=True)
    role = Column(String(30), nullable=False, default="owner")
    language = Column(String(10), nullable=False, default="en")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    last_login = Column(DateTime, nullable=True)

    outlets = relationship("RetailOutlet", back_populates="owner", lazy="dynamic")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class RetailOutlet(Base):
    """Retail outlet - the tenant every other record is scoped under"""
    __tablename__ = "retail_outlets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(150), nullable=False)
    sap_code = Column(String(50), nullable=True)
    oil_company = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    phone_number = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="outlets")
    products = relationship("Product", back_populates="outlet", lazy="dynamic", cascade="all, delete-orphan")
    tanks = relationship("Tank", back_populates="outlet", lazy="dynamic", cascade="all, delete-orphan")
    dispensing_units = relationship("DispensingUnit", back_populates="outlet", lazy="dynamic", cascade="all, delete-orphan")
    staff = relationship("Staff", back_populates="outlet", lazy="dynamic", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<RetailOutlet(id={self.id}, name='{self.name}')>"

# ============================================================================
# SETUP MASTERS
# ============================================================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    name = Column(String(100), nullable=False)
    fuel_type = Column(SAEnum(FuelType), nullable=False)
    price_per_liter = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("retail_outlet_id", "name", name="uq_product_outlet_name"),
    )

    outlet = relationship("RetailOutlet", back_populates="products")

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"


class Tank(Base):
    __tablename__ = "tanks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    tank_number = Column(String(20), nullable=False)
    capacity = Column(Float, nullable=False)
    current_stock = Column(Float, default=0.0)
    minimum_level = Column(Float, default=500.0)
    length_m = Column(Float, nullable=True)
    diameter_m = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    # Tank number must be unique PER OUTLET
    __table_args__ = (
        UniqueConstraint("retail_outlet_id", "tank_number", name="uq_tank_outlet_number"),
    )

    outlet = relationship("RetailOutlet", back_populates="tanks")
    product = relationship("Product")
    nozzles = relationship("Nozzle", back_populates="tank", lazy="dynamic")

    def __repr__(self):
        return f"<Tank(id={self.id}, tank_number='{self.tank_number}')>"


class DispensingUnit(Base):
    __tablename__ = "dispensing_units"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    name = Column(String(50), nullable=False)
    brand = Column(String(50), nullable=True)
    model = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("retail_outlet_id", "name", name="uq_unit_outlet_name"),
    )

    outlet = relationship("RetailOutlet", back_populates="dispensing_units")
    nozzles = relationship("Nozzle", back_populates="dispensing_unit", lazy="dynamic", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<DispensingUnit(id={self.id}, name='{self.name}')>"


class Nozzle(Base):
    """One outlet on a dispensing unit; draws from one tank, sells one product"""
    __tablename__ = "nozzles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dispensing_unit_id = Column(Integer, ForeignKey("dispensing_units.id"), nullable=False)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    nozzle_number = Column(Integer, nullable=False)
    calibration_valid_until = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("dispensing_unit_id", "nozzle_number", name="uq_nozzle_unit_number"),
    )

    dispensing_unit = relationship("DispensingUnit", back_populates="nozzles")
    tank = relationship("Tank", back_populates="nozzles")
    product = relationship("Product")

    def __repr__(self):
        return f"<Nozzle(id={self.id}, unit={self.dispensing_unit_id}, number={self.nozzle_number})>"


class Staff(Base):
    """Managers (phone + password login) and attendants (no login)"""
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    name = Column(String(150), nullable=False)
    phone_number = Column(String(20), nullable=True)
    role = Column(SAEnum(StaffRole), nullable=False, default=StaffRole.ATTENDANT)
    password_hash = Column(String(250), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    outlet = relationship("RetailOutlet", back_populates="staff")

    def __repr__(self):
        return f"<Staff(id={self.id}, name='{self.name}', role={self.role})>"

# ============================================================================
# SHIFT-SCOPED RECORDS
# ============================================================================

class NozzleReading(Base):
    """Opening/closing meter values and payment split for one nozzle in one shift"""
    __tablename__ = "nozzle_readings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    nozzle_id = Column(Integer, ForeignKey("nozzles.id"), nullable=False)
    attendant_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)  # nozzle's product when recorded
    shift_type = Column(SAEnum(ShiftType), nullable=False)
    shift_date = Column(Date, nullable=False)

    previous_reading = Column(Float, nullable=False)
    current_reading = Column(Float, nullable=False)
    testing = Column(Float, default=0.0)

    cash_sales = Column(Float, default=0.0)
    credit_sales = Column(Float, default=0.0)
    upi_sales = Column(Float, default=0.0)
    card_sales = Column(Float, default=0.0)
    total_sale = Column(Float, default=0.0)  # cash + credit + upi + card

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_by = Column(String(100), nullable=True)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("nozzle_id", "shift_type", "shift_date", name="uq_reading_nozzle_shift"),
        Index("idx_reading_shift", "retail_outlet_id", "shift_type", "shift_date"),
    )

    nozzle = relationship("Nozzle")
    attendant = relationship("Staff")

    def __repr__(self):
        return f"<NozzleReading nozzle={self.nozzle_id} shift={self.shift_type} date={self.shift_date}>"


class ProductRate(Base):
    """Price per liter and density observation for one product in one shift"""
    __tablename__ = "product_rates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    shift_type = Column(SAEnum(ShiftType), nullable=False)
    shift_date = Column(Date, nullable=False)
    rate = Column(Float, nullable=False, default=0.0)
    observed_density = Column(Float, nullable=True)      # kg/m3
    observed_temperature = Column(Float, nullable=True)  # °C
    density_at_15c = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("product_id", "shift_type", "shift_date", name="uq_rate_product_shift"),
        Index("idx_rate_shift", "retail_outlet_id", "shift_date", "shift_type"),
    )

    product = relationship("Product")

    def __repr__(self):
        return f"<ProductRate product={self.product_id} shift={self.shift_type} date={self.shift_date} rate={self.rate}>"


class StockEntry(Base):
    """Opening stock, receipt and invoice value for one tank in one shift"""
    __tablename__ = "stock_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=False)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False)
    manager_id = Column(Integer, ForeignKey("staff.id"), nullable=True)
    shift_type = Column(SAEnum(ShiftType), nullable=False)
    shift_date = Column(Date, nullable=False)
    opening_stock = Column(Float, default=0.0)
    receipt = Column(Float, default=0.0)
    invoice_value = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("tank_id", "shift_type", "shift_date", name="uq_stock_tank_shift"),
        Index("idx_stock_shift", "retail_outlet_id", "shift_type", "shift_date"),
    )

    tank = relationship("Tank")

    def __repr__(self):
        return f"<StockEntry tank={self.tank_id} shift={self.shift_type} date={self.shift_date}>"

# ============================================================================
# AUDIT & RECYCLE BIN
# ============================================================================

class RecycleBinEntry(Base):
    """Archived snapshot of deleted records (soft delete bin)."""
    __tablename__ = "recycle_bin_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    resource_type = Column(String(100), nullable=False, index=True)
    resource_id = Column(String(100), nullable=False, index=True)
    resource_label = Column(String(255), nullable=True)
    payload_json = Column(Text, nullable=False)
    reason = Column(String(255), nullable=True)
    retail_outlet_id = Column(Integer, nullable=True, index=True)
    deleted_by = Column(String(100), nullable=False)
    deleted_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RecycleBinEntry(resource_type='{self.resource_type}', resource_id='{self.resource_id}')>"


class AuditLog(Base):
    """Audit log for tracking entry and setup actions"""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, server_default=func.now())
    username = Column(String(100), nullable=False)
    action = Column(String(50), nullable=False)  # LOGIN, CREATE, UPDATE, DELETE, ...
    resource_type = Column(String(100), nullable=True)
    resource_id = Column(String(100), nullable=True)
    details = Column(String(500), nullable=True)
    retail_outlet_id = Column(Integer, ForeignKey("retail_outlets.id"), nullable=True)
    success = Column(Boolean, default=True)

    def __repr__(self):
        return f"<AuditLog(user='{self.username}', action='{self.action}', time='{self.timestamp}')>"


# ============================================================================
# DATABASE INDEXES FOR PERFORMANCE
# ============================================================================

Index('idx_nozzle_tank', Nozzle.tank_id)
Index('idx_reading_nozzle_created', NozzleReading.nozzle_id, NozzleReading.created_at)
Index('idx_audit_timestamp', AuditLog.timestamp)
