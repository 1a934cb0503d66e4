# health_check.py
"""
System health check utility
Run: python health_check.py
"""

import importlib
from pathlib import Path
from datetime import datetime
import sys

from sqlalchemy import inspect, text

CRITICAL_TABLES = [
    'users', 'retail_outlets', 'products', 'tanks', 'dispensing_units',
    'nozzles', 'staff', 'nozzle_readings', 'product_rates', 'stock_entries',
    'audit_log', 'recycle_bin_entries',
]

REQUIRED_PACKAGES = [
    'streamlit', 'sqlalchemy', 'pandas', 'bcrypt', 'pytz', 'dotenv',
    'reportlab', 'xlsxwriter', 'plotly',
]


def check_database(engine=None):
    """Check the database is reachable and every critical table exists"""
    if engine is None:
        from db import engine

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        existing = set(inspect(engine).get_table_names())
    except Exception as e:
        return False, f"Database error: {e}"

    missing = [t for t in CRITICAL_TABLES if t not in existing]
    if missing:
        return False, f"Missing tables: {', '.join(missing)} (run init_db())"
    return True, f"Database OK - All {len(CRITICAL_TABLES)} critical tables accessible"


def check_dependencies():
    """Check if all required packages are installed"""
    missing = []
    for package in REQUIRED_PACKAGES:
        try:
            importlib.import_module(package)
        except ImportError:
            missing.append(package)

    if missing:
        return False, f"Missing packages: {', '.join(missing)}"
    return True, f"All {len(REQUIRED_PACKAGES)} required packages installed"


def check_directories(base: Path = Path(".")):
    """Check required directories exist, creating any that are missing"""
    from logger import LOGS_DIR

    dirs = [base / LOGS_DIR]
    missing = [d for d in dirs if not d.exists()]
    for d in missing:
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return False, f"Failed to create directory {d}: {e}"

    if missing:
        return True, f"Created {len(missing)} missing director(ies)"
    return True, f"All {len(dirs)} required directories exist"


def check_config():
    """Check if configuration is valid"""
    try:
        from db import DB_URL
        from outlet_config import OutletConfig
        from timezone_utils import LOCAL_TIMEZONE
    except Exception as e:
        return False, f"Configuration error: {e}"

    if not DB_URL:
        return False, "DB_URL is empty"
    return True, f"Configuration valid (timezone {LOCAL_TIMEZONE.zone}, shifts {', '.join(OutletConfig.SHIFT_SEQUENCE)})"


def main():
    """Run every check, print one line each, exit 1 if any failed."""
    from logger import log_warning

    checks = {
        "database": check_database,
        "packages": check_dependencies,
        "directories": check_directories,
        "config": check_config,
    }
    print(f"FPMS health check @ {datetime.now():%Y-%m-%d %H:%M:%S}")
    print("-" * 60)

    failures = []
    for name, check in checks.items():
        passed, message = check()
        mark = "OK  " if passed else "FAIL"
        print(f"[{mark}] {name:<12} {message}")
        if not passed:
            failures.append(name)

    print("-" * 60)
    if failures:
        print(f"{len(failures)} check(s) failed: {', '.join(failures)}")
        log_warning(f"Health check failed: {', '.join(failures)}")
        return 1
    print("All checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
