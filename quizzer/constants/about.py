"""Static metadata describing Quizzer."""

APP_NAME = "Quizzer"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Quizzer is a single-device quiz builder and quiz taker. "
    "Author quizzes, publish them, take them against the clock and review scored results."
)
