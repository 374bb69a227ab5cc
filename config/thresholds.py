# Central place for temporal constants (keep deterministic).

# Time-of-day buckets: (start_hour, label), checked in order, end exclusive
TIME_OF_DAY_BUCKETS = (
    (18, "evening"),
    (12, "afternoon"),
    (6, "morning"),
    (0, "night"),
)

# Humanized duration thresholds (seconds)
HUMANIZE_FEW_SECONDS = 45
HUMANIZE_MINUTE = 90
HUMANIZE_MINUTES = 45 * 60
HUMANIZE_HOUR = 90 * 60
HUMANIZE_HOURS = 22 * 3600
HUMANIZE_DAY = 36 * 3600
HUMANIZE_DAYS = 26 * 86400
HUMANIZE_MONTH = 45 * 86400
HUMANIZE_MONTHS = 320 * 86400
HUMANIZE_YEAR = 548 * 86400

# Reminder units -> seconds
UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
}

# Upper bounds accepted by the trackers (one week)
MAX_DELAY_SECONDS = 7 * 86400
MAX_REMINDER_SECONDS = 7 * 86400

SESSION_SUMMARY_CATEGORY = "session_summary"
