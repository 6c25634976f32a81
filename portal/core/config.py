"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: The session secret has no default - it MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma-separated origins. Empty = default list in portal.main.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    # Any SQLAlchemy URL (postgresql+psycopg2://..., sqlite:///...).
    database_url: str = "sqlite:///./growup_portal.db"

    # ===========================================
    # SESSIONS & CREDENTIALS
    # ===========================================
    session_secret: str  # Required, no default
    session_ttl: int = 86400  # 24 hours
    # passlib CryptContext schemes, first one is used for new hashes
    password_schemes: str = "pbkdf2_sha256"

    # ===========================================
    # ACCESS POLICY
    # ===========================================
    class_grades: str = "9,10,11,12"
    # Refuse demoting / deleting the last remaining admin
    protect_last_admin: bool = True

    # ===========================================
    # SUBSCRIPTIONS & PAYMENTS
    # ===========================================
    overall_fallback_price: int = 2000
    class_wise_fallback_price: int = 500
    # Shared secret the payment gateway sends with confirmation callbacks
    payment_webhook_secret: str | None = None

    # ===========================================
    # AUDIT
    # ===========================================
    audit_log_cap: int = 1000

    # ===========================================
    # SEEDING (first start)
    # ===========================================
    seed_on_startup: bool = True
    seed_admin_email: str = "admin@growup.com"
    seed_admin_password: str | None = None
    seed_teacher_email: str = "teacher@growup.com"
    seed_teacher_password: str | None = None

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("class_grades")
    @classmethod
    def parse_class_grades(cls, v: str) -> str:
        """Validate grades format."""
        grades = [g.strip() for g in v.split(",") if g.strip()]
        if not grades:
            raise ValueError("class_grades must list at least one grade")
        return ",".join(grades)

    @property
    def class_grades_list(self) -> list[str]:
        """Get configured class grades in declared order."""
        return self.class_grades.split(",")

    @property
    def password_schemes_list(self) -> list[str]:
        return [s.strip() for s in self.password_schemes.split(",") if s.strip()]

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """Ensure session secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("session_secret must be at least 16 characters")
        if v in ("changeme", "secret", "password", "admin"):
            raise ValueError("session_secret is too weak, please change it")
        return v

    @field_validator("audit_log_cap")
    @classmethod
    def validate_audit_log_cap(cls, v: int) -> int:
        if v < 1:
            raise ValueError("audit_log_cap must be positive")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
