"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class LatestSourceSettings(BaseSettings):
    """Live rate service (open.er-api.com) connection settings."""

    model_config = SettingsConfigDict(env_prefix="LATEST_")

    base_url: str = "https://open.er-api.com"
    timeout_seconds: float = 15.0


class HistoricalSourceSettings(BaseSettings):
    """Time-series rate service (Frankfurter) connection settings."""

    model_config = SettingsConfigDict(env_prefix="HISTORICAL_")

    base_url: str = "https://api.frankfurter.dev"
    timeout_seconds: float = 30.0


class CacheSettings(BaseSettings):
    """On-disk rate cache configuration.

    Rates are published with daily granularity, so both the latest-rate
    table and the historical series are trusted for 24 hours.
    """

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    db_path: str = "data/devise_cache.db"
    ttl_hours: float = 24.0

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_hours * 3600.0


class ConverterSettings(BaseSettings):
    """Two-field converter behaviour."""

    model_config = SettingsConfigDict(env_prefix="CONVERTER_")

    base_currency: str = "EUR"  # base requested from the live source
    default_from: str = "EUR"
    default_to: str = "USD"
    default_amount: str = "1"
    debounce_seconds: float = 0.15
    display_precision: int = 6


class IdentitySettings(BaseSettings):
    """Identity collaborator. The user id namespaces the historical cache."""

    model_config = SettingsConfigDict(env_prefix="IDENTITY_")

    user_id: str | None = None


class ApiSettings(BaseSettings):
    """HTTP/WebSocket surface for display clients."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "127.0.0.1"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # LOG_FORMAT: "json" or "console"
    latest: LatestSourceSettings = LatestSourceSettings()
    historical: HistoricalSourceSettings = HistoricalSourceSettings()
    cache: CacheSettings = CacheSettings()
    converter: ConverterSettings = ConverterSettings()
    identity: IdentitySettings = IdentitySettings()
    api: ApiSettings = ApiSettings()
