"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

# Payroll
STANDARD_DAYS_PER_MONTH = 30
MONEY_QUANTUM = Decimal("0.01")

# Leave ledger
MONTHLY_LEAVE_ACCRUAL = 1
CARRY_FORWARD_CAP = 1
MAX_LEAVES_PER_MONTH = 2

# Attendance
DEFAULT_NORMAL_WORKING_HOURS = 8
DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.5")
HOURS_QUANTUM = Decimal("0.01")

# Geofence
EARTH_RADIUS_METERS = 6_371_000
DEFAULT_GEOFENCE_RADIUS_METERS = 1500

DEFAULT_HISTORY_LIMIT = 31
