from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.
    Values come from environment variables or a local .env file.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./meeting_rooms.db"

    # JWT (bearer tokens issued by /auth/login)
    SECRET_KEY: str = "your-super-secret-key-please-change-this-to-a-strong-random-string"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # File uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_FILES: int = 5
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    ALLOWED_UPLOAD_EXTENSIONS: list[str] = [".jpg", ".jpeg", ".png", ".pdf", ".docx", ".xlsx", ".txt"]

    # Bootstrap admin (created on startup if missing)
    DEFAULT_ADMIN_EMAIL: str = "admin@meeting.local"
    DEFAULT_ADMIN_PASSWORD: str = "admin"

    LOG_LEVEL: str = "INFO"

settings = Settings()

class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # invitation emails are off unless explicitly enabled
    EMAIL_ENABLED: bool = False

    # smtp | console
    EMAIL_BACKEND: str = "console"

    EMAIL_HOST: str = "smtp.example.com"
    EMAIL_PORT: int = 587

    EMAIL_USERNAME: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@meeting.local"
    EMAIL_FROM_NAME: str = "Meeting Rooms"

    EMAIL_USE_TLS: bool = True
    EMAIL_USE_SSL: bool = False

email_settings = EmailSettings()
