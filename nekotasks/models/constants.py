"""Constants for NekoTasks.

This module centralizes magic numbers and default values used throughout the application.
"""

# Event defaults
DEFAULT_EVENT_START_HOUR = 9  # 9 AM today when no start is given
DEFAULT_EVENT_DURATION_MINUTES = 60

# Priority bounds (1 = low, 3 = high)
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 3

# Reminders
SNOOZE_MINUTES = 15
