"""Site Attendance package.

Geofenced check-in/check-out for small organisations. The package is organized
by feature modules (users, companies, attendance, location, geofence, ...) with a
thin Flask controller layer over service/repository layers that share one
explicit application state.
"""
