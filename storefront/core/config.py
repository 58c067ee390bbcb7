from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]
CurrencyPosition = Literal["before", "after"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "Storefront"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Storage
    REDIS_URL: Optional[str] = None            # unset => JSON files under DATA_DIR
    DATA_DIR: str = "var/kv"                   # kept apart from the seed under data/
    kv_prefix: str = "storefront"              # redis key namespace
    catalog_key: str = "products"
    cart_storage_key: str = "shopping_cart"

    # Catalog
    CATALOG_SOURCE: str = "data/products.json"  # file path or http(s) URL
    catalog_fetch_timeout_s: int = 10

    # Cart
    max_quantity_per_item: int = 99

    # Currency
    currency_code: str = "USD"
    currency_symbol: str = "$"
    currency_position: CurrencyPosition = "before"

    # Order message / deep link
    WHATSAPP_PHONE: str = "1234567890"         # country code, no + or spaces
    share_uri_template: str = "https://wa.me/{phone}?text={text}"
    order_message_prefix: str = "🛒 *New Order from Shopping Site*\n\n"

    # Search
    search_threshold: float = 0.4              # 0 = exact, 1 = match anything
    search_min_match_chars: int = 2
    search_debounce_ms: int = 300

    # Admin
    ADMIN_PASSWORD: str = ""                   # empty => admin login disabled
    ADMIN_TOKEN_SECRET: str = ""
    admin_token_ttl: int = 8 * 3600            # seconds

    # API
    api_prefix: str = "/api/v1"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
