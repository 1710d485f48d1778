"""Environment-driven settings for the HTTP rule source.

Values are read from ``BOOKINGQUOTE_*`` environment variables or a ``.env``
file, e.g. ``BOOKINGQUOTE_REST_URL=https://project.supabase.co``.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuleSourceSettings(BaseSettings):
    rest_url: Optional[str] = Field(None)
    api_key: Optional[str] = Field(None)
    timeout_seconds: float = Field(5.0, gt=0)
    rules_table: str = Field("scheduling_rules")
    overrides_table: str = Field("customer_pricing_overrides")

    model_config = SettingsConfigDict(env_prefix="BOOKINGQUOTE_", env_file=".env", extra="ignore")

    @field_validator("rest_url")
    @classmethod
    def strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        return value.rstrip("/") if value else value

    @property
    def is_configured(self) -> bool:
        return bool(self.rest_url and self.api_key)
