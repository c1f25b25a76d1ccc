from datetime import timedelta
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openphone_api_key: str = ""
    openphone_api_url: str = "https://api.openphone.com/v1"
    openphone_from_number: str = "+16464441357"
    openphone_webhook_secret: Optional[str] = None
    webhook_signature_max_age_seconds: int = 300

    plain_api_key: str = ""
    plain_api_url: str = "https://core-api.uk.plain.com/graphql/v1"
    plain_webhook_secret: Optional[str] = None
    relay_actor_type: str = "machineUser"

    # No key means no CRM enrichment, not a disabled service.
    hubspot_api_key: Optional[str] = None
    hubspot_api_url: str = "https://api.hubapi.com"
    hubspot_timeout_seconds: float = 5.0

    continuity_window_hours: float = 12
    thread_lookup_limit: int = 10
    placeholder_email_domain: str = "phone.maple.inc"
    default_phone_region: Optional[str] = "US"

    http_timeout_seconds: float = 30.0
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def continuity_window(self) -> timedelta:
        return timedelta(hours=self.continuity_window_hours)

    @property
    def enrichment_enabled(self) -> bool:
        return bool(self.hubspot_api_key)


settings = Settings()


def get_settings() -> Settings:
    return settings
