import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as walkbook.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "walkbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie issued by the auth service
    AUTH_COOKIE_NAME = "walkbook_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Every transaction gives up after this long and surfaces a TransientError
    TRANSACTION_TIMEOUT_SECONDS = int(os.getenv("TRANSACTION_TIMEOUT_SECONDS", "5"))

    # Attempts for create/move when the commit loses a uniqueness race or hits lock contention
    BOOKING_CONFLICT_RETRIES = int(os.getenv("BOOKING_CONFLICT_RETRIES", "3"))

    # Deactivation sweep lease
    SWEEP_LEASE_SECONDS = int(os.getenv("SWEEP_LEASE_SECONDS", "600"))

    # Booking dates and times are wall-clock times at the shelter
    SHELTER_TIMEZONE = os.getenv("SHELTER_TIMEZONE", "UTC")

    # Notifications
    NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "false").lower() == "true"

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BOOKING_CONFLICT_RETRIES = 3
    TRANSACTION_TIMEOUT_SECONDS = 5
    NOTIFICATIONS_ENABLED = False
