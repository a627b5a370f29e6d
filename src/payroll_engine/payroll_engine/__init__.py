"""Attendance-to-payroll engine.

This package is organized by feature modules (calendars, geofence, attendance,
leave, payroll, ...) with pure service/engine layers over repository ports and
a thin Flask JSON controller layer.
"""
