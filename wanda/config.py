from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    VAPI_API_KEY: Optional[str] = None
    VAPI_BASE_URL: str = "https://api.vapi.ai"
    VAPI_PHONE_NUMBER_ID: Optional[str] = None
    SIP_BRIDGE_ENABLED: bool = False

    GOOGLE_MAPS_API_KEY: Optional[str] = None

    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None

    DATABASE_URL: str = "sqlite:///wanda_data.db"

    # Public URL of this service (an ngrok tunnel when LOCAL is set).
    PUBLIC_BASE_URL: Optional[str] = None
    LOCAL: bool = False

    MODEL: str = "gpt-4o-2024-11-20"
    MODEL_PROVIDER: str = "openai"
    PREFERENCES_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra='ignore')

    def missing_required(self) -> List[str]:
        """Names of the keys a call cannot be started without."""
        required = [
            "GOOGLE_MAPS_API_KEY",
            "TWILIO_ACCOUNT_SID",
            "TWILIO_AUTH_TOKEN",
            "TWILIO_PHONE_NUMBER",
        ]
        if self.SIP_BRIDGE_ENABLED:
            required += ["VAPI_API_KEY", "VAPI_PHONE_NUMBER_ID"]
        return [name for name in required if not getattr(self, name)]


settings = Settings()
