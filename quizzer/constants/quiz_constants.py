"""Quiz-related constants shared across the catalog and the session engine."""

DEFAULT_TIME_LIMIT_VALUE: int = 10
DEFAULT_POINT_VALUE: int = 1
MIN_OPTIONS_PER_QUESTION: int = 2
TICK_INTERVAL_MS: int = 1000
TIME_RUNNING_OUT_THRESHOLD_SECONDS: int = 60
