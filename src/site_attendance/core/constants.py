"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAX_DISTANCE_METERS = 100.0
DEFAULT_EXIT_BUFFER_METERS = 0.0

EARTH_RADIUS_KM = 6371.0
NULL_ISLAND_EPSILON = 0.0001

HISTORY_LIMIT = 50
COMPANY_LOG_LIMIT = 20
HISTORY_SAMPLE_SECONDS = 300
CLOCK_TICK_SECONDS = 1
RE_CHECK_AFTER_HOURS = 2

HIGH_ACCURACY_TIMEOUT_MS = 5000
LOW_ACCURACY_TIMEOUT_MS = 60000
LOGIN_FIX_TIMEOUT_MS = 10000

# New York; used when real acquisition is unavailable.
MOCK_LATITUDE = 40.7128
MOCK_LONGITUDE = -74.0060

DEFAULT_CHECKOUT_REASON = "Check-Out"
GEOFENCE_EXIT_REASON = "Geofence Exit"

# Per-browser device sessions.
DEVICE_IDLE_SECONDS = 1800
MAX_DEVICES = 500
