"""Application settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration."""

    APP_NAME: str = "House Points"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./house_points.db"

    # Seeded on first load of an empty database
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"

    # Sorting wheel
    # Arc names clockwise from the pointer. Empty means "use the house names".
    SORTING_CATEGORIES: list[str] = ["Darwin", "Curie", "Hippocretes", "Newton"]
    SORTING_MAX_ATTEMPTS: int = 20

    # Logos and photos
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024  # 5MB
    ALLOWED_IMAGE_TYPES: list[str] = ["image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
