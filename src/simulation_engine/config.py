# Efficiency modifiers (multiply the effort one charge yields)
DOUBLE_EVENT_MULTIPLIER = 2.0
PRIVATE_DUMMY_MULTIPLIER = 1.10
LOYALTY_PERCENT_DIVISOR = 100.0

# Speed modifiers (divide the real time one charge takes)
VIP_SPEED_MULTIPLIER = 1.10

# Floating-point tolerances
EFFORT_REL_TOLERANCE = 1e-9   # level counts as completed within this fraction
CHARGE_REL_TOLERANCE = 1e-12  # ceiling snaps to an integer within this fraction

# Result presentation
PERCENT_DECIMALS = 2
MAX_DISPLAY_PERCENT = 99.99   # never display a level as 100% complete

# Time conversion
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
HOURS_PER_DAY = 24
