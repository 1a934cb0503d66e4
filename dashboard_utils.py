# dashboard_utils.py
"""
Dashboard utilities for FPMS analytics and metrics.
Sales totals, payment mix, tank levels and calibration reminders.
"""

from datetime import date, timedelta
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from models import NozzleReading, Nozzle, DispensingUnit, Tank, Product
from outlet_config import OutletConfig


class DashboardMetrics:
    """Calculate dashboard metrics and analytics"""

    @staticmethod
    def get_sales_totals(session: Session, outlet_id: int, date_from: date, date_to: date) -> Dict:
        """Summed payments for every reading between two dates (inclusive)"""
        row = session.query(
            func.coalesce(func.sum(NozzleReading.cash_sales), 0.0),
            func.coalesce(func.sum(NozzleReading.credit_sales), 0.0),
            func.coalesce(func.sum(NozzleReading.upi_sales), 0.0),
            func.coalesce(func.sum(NozzleReading.card_sales), 0.0),
            func.count(NozzleReading.id),
        ).filter(
            NozzleReading.retail_outlet_id == outlet_id,
            NozzleReading.shift_date >= date_from,
            NozzleReading.shift_date <= date_to,
        ).one()

        cash, credit, upi, card, count = row
        return {
            "cash": float(cash),
            "credit": float(credit),
            "upi": float(upi),
            "card": float(card),
            "total": float(cash) + float(credit) + float(upi) + float(card),
            "readings": int(count),
        }

    @staticmethod
    def get_sales_stats(session: Session, outlet_id: int, today: Optional[date] = None) -> Dict:
        """Weekly and monthly sales, each ending today"""
        today = today or date.today()
        week_from = today - timedelta(days=OutletConfig.REPORT_WEEK_DAYS - 1)
        month_from = today - timedelta(days=OutletConfig.REPORT_MONTH_DAYS - 1)

        return {
            "today": DashboardMetrics.get_sales_totals(session, outlet_id, today, today),
            "weekly": DashboardMetrics.get_sales_totals(session, outlet_id, week_from, today),
            "monthly": DashboardMetrics.get_sales_totals(session, outlet_id, month_from, today),
        }

    @staticmethod
    def payment_mix(totals: Dict) -> Dict[str, float]:
        """
        Percentage share per payment method.
        A zero total gives 0% for every method.
        """
        total = float(totals.get("total") or 0.0)
        if total <= 0:
            return {m: 0.0 for m in OutletConfig.PAYMENT_METHODS}
        return {
            m: round(float(totals.get(m) or 0.0) / total * 100, 1)
            for m in OutletConfig.PAYMENT_METHODS
        }

    @staticmethod
    def daily_sales(session: Session, outlet_id: int, date_from: date, date_to: date) -> List[Dict]:
        """One row per shift date, for the trend chart"""
        rows = session.query(
            NozzleReading.shift_date,
            func.coalesce(func.sum(NozzleReading.total_sale), 0.0),
        ).filter(
            NozzleReading.retail_outlet_id == outlet_id,
            NozzleReading.shift_date >= date_from,
            NozzleReading.shift_date <= date_to,
        ).group_by(NozzleReading.shift_date).order_by(NozzleReading.shift_date).all()

        return [{"date": d, "total_sale": float(total)} for d, total in rows]

    @staticmethod
    def tank_status(fill_pct: float) -> str:
        if fill_pct > OutletConfig.NORMAL_STOCK_PERCENT:
            return "normal"
        if fill_pct > OutletConfig.LOW_STOCK_PERCENT:
            return "low"
        return "empty"

    @staticmethod
    def get_stock_levels(session: Session, outlet_id: int) -> List[Dict]:
        """Current stock levels for all active tanks at an outlet"""
        tanks = session.query(Tank).filter(
            Tank.retail_outlet_id == outlet_id,
            Tank.is_active == True  # noqa: E712
        ).order_by(Tank.tank_number).all()

        stock_levels = []
        for tank in tanks:
            capacity = float(tank.capacity or 0.0)
            current = float(tank.current_stock or 0.0)
            fill_pct = (current / capacity * 100) if capacity > 0 else 0.0
            status = DashboardMetrics.tank_status(fill_pct)

            stock_levels.append({
                "tank_id": tank.id,
                "tank_number": tank.tank_number,
                "product": tank.product.name if tank.product else "",
                "capacity": round(capacity, 2),
                "current_stock": round(current, 2),
                "available_space": round(capacity - current, 2),
                "fill_percentage": round(fill_pct, 1),
                "status": status,
                "below_minimum": current < float(tank.minimum_level or OutletConfig.DEFAULT_MINIMUM_LEVEL),
            })

        return stock_levels

    @staticmethod
    def get_calibration_due(
        session: Session, outlet_id: int, today: Optional[date] = None, days: Optional[int] = None
    ) -> List[Dict]:
        """Active nozzles whose calibration lapses within `days` (or already has)"""
        today = today or date.today()
        days = OutletConfig.CALIBRATION_WARNING_DAYS if days is None else days
        cutoff = today + timedelta(days=days)

        nozzles = session.query(Nozzle).join(
            DispensingUnit, Nozzle.dispensing_unit_id == DispensingUnit.id
        ).filter(
            DispensingUnit.retail_outlet_id == outlet_id,
            Nozzle.is_active == True,  # noqa: E712
            Nozzle.calibration_valid_until.isnot(None),
            Nozzle.calibration_valid_until <= cutoff,
        ).order_by(Nozzle.calibration_valid_until).all()

        due = []
        for n in nozzles:
            days_left = (n.calibration_valid_until - today).days
            due.append({
                "nozzle_id": n.id,
                "unit": n.dispensing_unit.name,
                "nozzle_number": n.nozzle_number,
                "valid_until": n.calibration_valid_until,
                "days_left": days_left,
                "expired": days_left < 0,
            })
        return due

    @staticmethod
    def get_outlet_summary(session: Session, outlet_id: int) -> Dict:
        """Setup counts for the dealer home tiles"""
        return {
            "products": session.query(Product).filter(Product.retail_outlet_id == outlet_id).count(),
            "tanks": session.query(Tank).filter(Tank.retail_outlet_id == outlet_id).count(),
            "dispensing_units": session.query(DispensingUnit).filter(
                DispensingUnit.retail_outlet_id == outlet_id
            ).count(),
            "nozzles": session.query(Nozzle).join(
                DispensingUnit, Nozzle.dispensing_unit_id == DispensingUnit.id
            ).filter(DispensingUnit.retail_outlet_id == outlet_id).count(),
        }
