import os

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

# None keeps state in memory only.
DATA_FILE = None

SEED_DEMO_DATA = bool(int(os.getenv("SEED_DEMO_DATA", "0")))

VERIFY_BYPASS_CODE = None

GEOFENCE_RADIUS_M = 100.0
GEOFENCE_EXIT_BUFFER_M = 0.0

HISTORY_SAMPLE_SECONDS = 300

DEVICE_IDLE_SECONDS = 1800
MAX_DEVICES = 500

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
