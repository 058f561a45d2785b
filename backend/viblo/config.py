"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Central settings for backend endpoints, keys and client tunables."""

    # --- Supabase (managed relational backend) ---
    supabase_url: str = Field(
        default="http://localhost:54321", alias="SUPABASE_URL"
    )
    supabase_anon_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    video_bucket: str = Field(default="video_submission", alias="VIDEO_BUCKET")
    avatar_bucket: str = Field(default="profile_avatars", alias="AVATAR_BUCKET")

    # --- Companion backend (payments, OAuth, social metrics) ---
    backend_url: str = Field(
        default="http://localhost:3001", alias="EXPO_PUBLIC_BACKEND_URL"
    )
    api_key: str = Field(default="", alias="EXPO_PUBLIC_API_KEY")
    google_places_api_key: str = Field(
        default="", alias="EXPO_PUBLIC_GOOGLE_PLACES_API_KEY"
    )

    # --- Payment processor ---
    stripe_publishable_key: str = Field(default="", alias="STRIPE_PUBLISHABLE_KEY")
    merchant_display_name: str = Field(default="Viblo", alias="MERCHANT_DISPLAY_NAME")
    payment_return_url: str = Field(
        default="viblo://campaigns", alias="PAYMENT_RETURN_URL"
    )
    processing_fee_rate: float = Field(default=0.03, alias="PROCESSING_FEE_RATE")

    # --- Auth ---
    password_reset_url: str = Field(
        default="viblo://reset-password", alias="PASSWORD_RESET_URL"
    )
    min_password_length: int = Field(default=6, alias="MIN_PASSWORD_LENGTH")

    # --- HTTP ---
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    # --- Social connection polling (after the OAuth browser session closes) ---
    connection_poll_attempts: int = Field(default=5, alias="CONNECTION_POLL_ATTEMPTS")
    connection_poll_base_delay: float = Field(
        default=0.5, alias="CONNECTION_POLL_BASE_DELAY"
    )
    connection_poll_max_delay: float = Field(
        default=4.0, alias="CONNECTION_POLL_MAX_DELAY"
    )

    # --- Limits ---
    max_video_bytes: int = Field(default=500 * 1024 * 1024, alias="MAX_VIDEO_BYTES")
    max_avatar_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_AVATAR_BYTES")
    campaign_page_size: int = Field(default=10, alias="CAMPAIGN_PAGE_SIZE")

    # --- App ---
    app_env: str = Field(default="development", alias="APP_ENV")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
