"""
Multi-Channel Sales Sync Pipeline
Centralized Configuration Management

Pydantic settings with environment variable support, validation and type
safety. Channel credentials are read here once and handed to the adapters.
"""

from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ShopifySettings(BaseSettings):
    """Shopify Admin REST API Configuration"""

    model_config = SettingsConfigDict(env_prefix="SHOPIFY_", populate_by_name=True)

    store_domain: Optional[str] = Field(default=None, description="Shop domain, with or without .myshopify.com")
    access_token: Optional[SecretStr] = Field(default=None, description="Admin API access token")
    api_version: str = Field(default="2024-10", description="Admin API version")
    page_limit: int = Field(default=250, description="Orders per page (API maximum is 250)")
    timeout_seconds: float = Field(default=30.0, description="HTTP timeout in seconds")

    # Shopify does not expose per-order processing fees on the orders endpoint,
    # so they are estimated as rate * order_total + fixed.
    transaction_fee_rate: float = Field(default=0.029, description="Estimated payment processing rate")
    transaction_fee_fixed: float = Field(default=0.30, description="Estimated fixed fee per order")

    @property
    def shop_name(self) -> str:
        """Shop name without the .myshopify.com suffix"""
        domain = (self.store_domain or "").strip()
        return domain.removesuffix(".myshopify.com")

    @property
    def base_url(self) -> str:
        """Admin API base URL"""
        return f"https://{self.shop_name}.myshopify.com/admin/api/{self.api_version}"

    def missing_credentials(self) -> List[str]:
        """Environment variable names of required settings that are not set"""
        missing = []
        if not self.store_domain:
            missing.append("SHOPIFY_STORE_DOMAIN")
        if self.access_token is None or not self.access_token.get_secret_value():
            missing.append("SHOPIFY_ACCESS_TOKEN")
        return missing


class AmazonSettings(BaseSettings):
    """Amazon Selling Partner API Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    seller_id: Optional[str] = Field(default=None, alias="AMAZON_SELLER_ID")
    refresh_token: Optional[SecretStr] = Field(default=None, alias="AMAZON_REFRESH_TOKEN")
    lwa_client_id: Optional[str] = Field(default=None, alias="LWA_CLIENT_ID")
    lwa_client_secret: Optional[SecretStr] = Field(default=None, alias="LWA_CLIENT_SECRET")
    role_arn: Optional[str] = Field(default=None, alias="AWS_SELLING_PARTNER_ROLE_ARN")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[SecretStr] = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")

    marketplace: str = Field(default="US", alias="AMAZON_MARKETPLACE", description="Marketplace country code")
    marketplace_id: str = Field(default="ATVPDKIKX0DER", alias="AMAZON_MARKETPLACE_ID")
    # Comma-separated in the environment, e.g. "Shipped,Unshipped"
    order_statuses: Annotated[List[str], NoDecode] = Field(
        default=["Unshipped", "PartiallyShipped", "Shipped", "Canceled"],
        alias="AMAZON_ORDER_STATUSES",
    )

    # Throttling
    item_concurrency: int = Field(default=1, alias="AMAZON_ITEM_CONCURRENCY", description="Concurrent order-item fetches")
    page_delay_seconds: float = Field(default=0.5, alias="AMAZON_PAGE_DELAY_SECONDS", description="Delay between finance/inventory pages")

    @field_validator("item_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Concurrency must allow at least one request"""
        if v < 1:
            raise ValueError("AMAZON_ITEM_CONCURRENCY must be >= 1")
        return v

    @field_validator("order_statuses", mode="before")
    @classmethod
    def split_order_statuses(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list"""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    def _required(self) -> Dict[str, object]:
        return {
            "AMAZON_SELLER_ID": self.seller_id,
            "AMAZON_REFRESH_TOKEN": self.refresh_token,
            "LWA_CLIENT_ID": self.lwa_client_id,
            "LWA_CLIENT_SECRET": self.lwa_client_secret,
            "AWS_SELLING_PARTNER_ROLE_ARN": self.role_arn,
            "AWS_ACCESS_KEY_ID": self.aws_access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.aws_secret_access_key,
        }

    def missing_credentials(self) -> List[str]:
        """Environment variable names of required credentials that are not set"""
        missing = []
        for name, value in self._required().items():
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if not value:
                missing.append(name)
        return missing

    def sp_api_credentials(self) -> Dict[str, Optional[str]]:
        """Credentials mapping in the shape python-amazon-sp-api expects"""
        return dict(
            refresh_token=self.refresh_token.get_secret_value() if self.refresh_token else None,
            lwa_app_id=self.lwa_client_id,
            lwa_client_secret=self.lwa_client_secret.get_secret_value() if self.lwa_client_secret else None,
            aws_access_key=self.aws_access_key_id,
            aws_secret_key=self.aws_secret_access_key.get_secret_value() if self.aws_secret_access_key else None,
            role_arn=self.role_arn,
        )


class SyncSettings(BaseSettings):
    """Incremental Sync Configuration"""

    model_config = SettingsConfigDict(env_prefix="SYNC_", populate_by_name=True)

    default_lookback_days: int = Field(default=35, description="Window used when no days/start/end given")
    sort_after_append: bool = Field(default=True, description="Re-sort the sales table by date after append")
    token: Optional[SecretStr] = Field(default=None, description="Shared secret for the HTTP sync endpoints")


class InventorySettings(BaseSettings):
    """Inventory Feed Configuration"""

    model_config = SettingsConfigDict(env_prefix="INVENTORY_", populate_by_name=True)

    velocity_lookback_days: int = Field(default=30, description="Days of sales used for velocity")
    safety_stock_days: int = Field(default=7, description="Safety stock in days of sales")
    lead_time_days: int = Field(default=14, description="Replenishment lead time in days")


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="sales_sync", alias="database", description="Database name")
    user: str = Field(default="salesync", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL - uses DATABASE_URL if set, otherwise asyncpg from parts"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="salesync", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)
    amazon: AmazonSettings = Field(default_factory=AmazonSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    inventory: InventorySettings = Field(default_factory=InventorySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
