"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://storefront:storefront_dev_password@db:5432/storefront"

    # Assets
    max_image_bytes: int = 1_000_000

    # Listing defaults (per call site)
    listing_default_sort_by: str = "id"
    listing_default_order: str = "asc"
    listing_default_limit: int = 6

    search_default_sort_by: str = "id"
    search_default_order: str = "desc"
    search_default_limit: int = 100

    related_default_limit: int = 6

    # Inventory
    inventory_allow_negative_stock: bool = False

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
