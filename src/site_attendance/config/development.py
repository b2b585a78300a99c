import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DEBUG = True

# Shared state file; every worker and browser tab reads and writes this one blob.
DATA_FILE = os.getenv("DATA_FILE", "instance/hr_app_db.json")

# Load the demo company (DEMO / manager / 123) into a fresh data file.
SEED_DEMO_DATA = bool(int(os.getenv("SEED_DEMO_DATA", "1")))

# Master verification code accepted in place of the issued one.
VERIFY_BYPASS_CODE = os.getenv("VERIFY_BYPASS_CODE", "1234")

GEOFENCE_RADIUS_M = float(os.getenv("GEOFENCE_RADIUS_M", "100"))
GEOFENCE_EXIT_BUFFER_M = float(os.getenv("GEOFENCE_EXIT_BUFFER_M", "0"))

HISTORY_SAMPLE_SECONDS = int(os.getenv("HISTORY_SAMPLE_SECONDS", "300"))

# Browser device sessions idle this long are torn down; the registry is capped at MAX_DEVICES.
DEVICE_IDLE_SECONDS = int(os.getenv("DEVICE_IDLE_SECONDS", "1800"))
MAX_DEVICES = int(os.getenv("MAX_DEVICES", "500"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
