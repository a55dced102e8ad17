"""Centralized constants for the quizflow engine.

Scheduling thresholds, sync timings and storage key formats live here so
every layer imports from a single source of truth.
"""

# ---------- Interval Scheduler ----------
INTERVAL_LADDER = (1, 3, 7, 14, 30, 60)  # days

# ---------- Difficulty Classifier ----------
EASY_STREAK = 5
MEDIUM_STREAK = 2

# ---------- Activity Ledger ----------
STREAK_SCAN_LIMIT = 366  # days
DEFAULT_CALENDAR_DAYS = 84

# ---------- Session Sync ----------
DEBOUNCE_SECONDS = 0.5
SESSION_CACHE_PREFIX = "qf-session"
DAILY_REVIEW_SUBJECT = "daily-review"  # subject id of the cross-subject review mode

# ---------- Durable Store (REST) ----------
REQUEST_TIMEOUT = 10.0
CARD_STATS_TABLE = "card_stats"
ACTIVITY_TABLE = "study_activity"
SESSIONS_TABLE = "study_sessions"
