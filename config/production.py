import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "payroll_engine_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

ENFORCE_GEOFENCE = bool(int(os.getenv("ENFORCE_GEOFENCE", "0")))
DEFAULT_GEOFENCE_RADIUS_METERS = int(os.getenv("DEFAULT_GEOFENCE_RADIUS_METERS", "1500"))

PAYROLL_MAX_WORKERS = int(os.getenv("PAYROLL_MAX_WORKERS", "8"))
