from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str

    # Postgres pooler connections need SSL; SQLite ignores it
    DB_SSL: bool = True

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "Super Admin"
    ENV: str = "dev"  # "dev" or "prod"

    # --- EMAIL SETTINGS ---
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 2525
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str = "no-reply@srmist.edu.in"
    EMAILS_FROM_NAME: str = "SRM Research Portal"
    FRONTEND_URL: str = "http://localhost:5173"

    # --- PASSWORD RESET ---
    OTP_EXPIRE_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 3
    MIN_PASSWORD_LENGTH: int = 8

    # --- RATE LIMITING ---
    REDIS_URL: str | None = None
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "10/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
