from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "BinderKeep"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "postgresql+asyncpg://localhost:5432/binderkeep"

    # Language used when a caller does not name one
    default_language: str = "en"

    # User-entered prices are recorded in this currency
    manual_price_currency: str = "EUR"

    # Currency of the externally sourced prices summed by the value views
    automatic_price_currency: str = "USD"


settings = Settings()


# =============================================================================
# EXTERNAL PRICE SELECTION
# =============================================================================

# (source, price_type, currency) in order of preference for "current" price
PREFERRED_PRICE_SOURCES: tuple[tuple[str, str, str], ...] = (
    ("tcgplayer", "normal_market", "USD"),
    ("cardmarket", "averageSellPrice", "EUR"),
)
