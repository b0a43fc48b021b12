"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_NOTICE_PERIOD_DAYS = 30
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 200

# MySQL error codes that abort a transaction but are safe to retry.
MYSQL_LOCK_WAIT_TIMEOUT = 1205
MYSQL_DEADLOCK = 1213
