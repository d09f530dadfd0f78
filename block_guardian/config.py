import os

APP_TITLE = "Block Guardian"
APPDATA_DIR = os.path.join(os.getenv("APPDATA") or os.path.expanduser("~"), "BlockGuardian")

CONFIG_FILE = os.path.join(APPDATA_DIR, "config.json")
USAGE_FILE = os.path.join(APPDATA_DIR, "usage.json")

LOG_DIR = os.path.join(APPDATA_DIR, "logs")
LOG_FILE = os.path.join(LOG_DIR, "block_guardian.log")
LOGGER_NAME = "BlockGuardian"

# Durable record names
RECORD_BLOCKLIST = "blocklist_v2"
RECORD_STRICT_MODE = "strict_mode"
RECORD_EMERGENCY = "emergency_access"
RECORD_BLOCK_MESSAGES = "block_messages"
RECORD_FOCUS_SESSION = "focus_session"
RECORD_APP_LIMITS = "app_limits"

# Emergency bypass
EMERGENCY_MAX_USES = 3
EMERGENCY_DURATION_SEC = 5 * 60

# Strict mode unlock window, local wall clock
UNLOCK_WINDOW_HOUR = 0
UNLOCK_WINDOW_END_MINUTE = 10

# Block screen messages
DEFAULT_BLOCK_MESSAGE = "Stay Focused."
DEFAULT_MESSAGE_POOL = [
    ("Stay focused on your goals.", ["ALL"]),
    ("You can do this!", ["ALL"]),
    ("Is this really important?", ["FOCUS"]),
    ("Go to sleep, tomorrow is a new day.", ["BEDTIME"]),
]

# Focus sessions
DEFAULT_SESSION_NAME = "Deep Work"
DEFAULT_PAUSE_LIMIT_SEC = 15 * 60

# Usage limits
LIMIT_REASON_PREFIX = "Daily Limit Reached"

# Rule sources that place apps in the box while they are active
RECORD_FOCUS_APPS = "focus_apps"
RECORD_BEDTIME = "bedtime"
RECORD_SCHEDULES = "schedules"
FOCUS_REASON = "Focus Mode"
BEDTIME_REASON = "Bedtime Mode"
SCHEDULE_REASON = "Scheduled Block"
DEFAULT_BEDTIME_START_MINS = 22 * 60
DEFAULT_BEDTIME_END_MINS = 7 * 60
