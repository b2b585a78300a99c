import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False

DATA_FILE = os.getenv("DATA_FILE", "instance/hr_app_db.json")

SEED_DEMO_DATA = bool(int(os.getenv("SEED_DEMO_DATA", "0")))

# Never accept a master code in production.
VERIFY_BYPASS_CODE = None

GEOFENCE_RADIUS_M = float(os.getenv("GEOFENCE_RADIUS_M", "100"))
GEOFENCE_EXIT_BUFFER_M = float(os.getenv("GEOFENCE_EXIT_BUFFER_M", "0"))

HISTORY_SAMPLE_SECONDS = int(os.getenv("HISTORY_SAMPLE_SECONDS", "300"))

# Browser device sessions idle this long are torn down; the registry is capped at MAX_DEVICES.
DEVICE_IDLE_SECONDS = int(os.getenv("DEVICE_IDLE_SECONDS", "1800"))
MAX_DEVICES = int(os.getenv("MAX_DEVICES", "500"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
