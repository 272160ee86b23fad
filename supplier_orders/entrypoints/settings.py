from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./supplier_orders.db"

    SHOPIFY_API_VERSION: str = "2025-01"
    SYNC_LOOKBACK_DAYS: int = 30

    # Empty disables bearer-token identities; only supplierName is honoured then
    SUPABASE_JWT_SECRET: str = ""

    # Applies to Shopify calls and to the sync-orders self call
    HTTP_TIMEOUT_SECONDS: float = 60.0

    LOG_LEVEL: str = "INFO"
    HOST: str = "127.0.0.1"
    PORT: int = 8000


config = Config()
