"""
Configuration constants and environment setup.
"""

import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# CALENDAR
# =============================================================================

# Defines what a "calendar day" is for attribution, blocks and streaks
LOCAL_TIMEZONE = ZoneInfo(os.environ.get("ACTIVITY_ENGINE_TIMEZONE", "UTC"))

# =============================================================================
# EVENT IMPORT
# =============================================================================

DEFAULT_DAYS_BACK = 7
DEFAULT_MIN_DURATION_SECONDS = 60
DEFAULT_GROUP_GAP_MINUTES = 15
DEDUP_GAP_TOLERANCE_SECONDS = 1.0

ACTIVITY_COLORS = [
    "blue",
    "green",
    "purple",
    "orange",
    "pink",
    "yellow",
    "indigo",
    "red",
    "teal",
    "cyan",
]
AFK_COLOR = "gray"

# =============================================================================
# TIME BLOCKS
# =============================================================================

DEFAULT_BLOCK_SIZE_MINUTES = 15

# Lock-screen window; never dominant while anything else is running
INACTIVE_ACTIVITY_NAME = "loginwindow"

# =============================================================================
# ROUTINE SCHEDULING
# =============================================================================

CHECK_INTERVAL_SECONDS = int(os.environ.get("ROUTINE_CHECK_INTERVAL_SECONDS", "60"))

# =============================================================================
# INSIGHTS
# =============================================================================

TRACKED_METRICS = [
    "happiness",
    "confidence",
    "stress",
    "cleanliness",
    "fulfillment",
    "motivation",
    "energy",
    "focus",
    "shame",
    "guilt",
]
INVERTED_METRICS = {"stress", "shame", "guilt"}  # lower is better
SIGNIFICANT_CHANGE = 5
MAX_PATTERN_GAP_HOURS = 24

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("ACTIVITY_ENGINE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
