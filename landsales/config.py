import os


class Config:
    """Base configuration. Shared across all environments."""

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    # --- Lead lifecycle ---
    LEAD_EXPIRATION_DAYS = int(os.environ.get("LEAD_EXPIRATION_DAYS", 7))
    LEAD_SWEEP_BATCH_SIZE = int(os.environ.get("LEAD_SWEEP_BATCH_SIZE", 100))
    # Lead codes are scan-and-increment; a unique index catches the race,
    # creation is retried this many times before giving up.
    LEAD_CODE_MAX_RETRIES = int(os.environ.get("LEAD_CODE_MAX_RETRIES", 3))

    # --- Reservations ---
    RESERVATION_HOLD_DAYS = int(os.environ.get("RESERVATION_HOLD_DAYS", 4))
    DEFAULT_EXCHANGE_RATE = os.environ.get("DEFAULT_EXCHANGE_RATE", "1.00")

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = ["DATABASE_URL"]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = Config.SQLALCHEMY_DATABASE_URI or "sqlite:///landsales.db"


class TestConfig(Config):
    """Testing — in-memory SQLite."""

    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LEAD_EXPIRATION_DAYS = 7
    LEAD_SWEEP_BATCH_SIZE = 2  # small so tests exercise more than one batch
    LEAD_CODE_MAX_RETRIES = 3
    RESERVATION_HOLD_DAYS = 4
    DEFAULT_EXCHANGE_RATE = "1.00"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
