from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TABLECACHE_", env_file=".env", extra="ignore", frozen=True
    )

    # Key layout: {namespace}:{data_prefix}:{tables}:{digest}
    # and {namespace}:{mapping_prefix}:{table} for the per-table key sets
    namespace: str = Field(default="sequelize_base_cache", min_length=1)
    mapping_prefix: str = Field(default="cache_keymap", min_length=1)
    data_prefix: str = Field(default="cache", min_length=1)

    ttl: int = Field(default=24 * 3600, gt=0)
    batch_key_count: int = Field(default=1000, gt=0)

    read_cache: bool = True
    # Reserved for write-path caching
    update_cache: bool = True

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Observability
    log_level: str = "INFO"
    log_json: bool = True
    enable_metrics: bool = True


settings = CacheSettings()
