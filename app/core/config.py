from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    admin_token: str = Field(default="", alias="ADMIN_TOKEN")

    db_path: str = Field(default="./data/app.db", alias="DB_PATH")

    # Provider
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    text_model: str = Field(default="gpt-4o", alias="TEXT_MODEL")
    image_model: str = Field(default="dall-e-3", alias="IMAGE_MODEL")
    image_size: str = Field(default="1024x1024", alias="IMAGE_SIZE")
    tts_model: str = Field(default="tts-1", alias="TTS_MODEL")
    tts_voice: str = Field(default="alloy", alias="TTS_VOICE")
    tts_max_chars: int = Field(default=4096, alias="TTS_MAX_CHARS")

    default_length: str = Field(default="medium", alias="DEFAULT_ARTICLE_LENGTH")
    topic_min_chars: int = Field(default=3, alias="TOPIC_MIN_CHARS")
    topic_max_chars: int = Field(default=500, alias="TOPIC_MAX_CHARS")

    # Outbound calls
    provider_timeout_seconds: float = Field(default=120.0, alias="PROVIDER_TIMEOUT_SECONDS")
    request_timeout_seconds: int = Field(default=30, alias="REQUEST_TIMEOUT_SECONDS")
    retry_attempts: int = Field(default=3, alias="RETRY_ATTEMPTS")
    retry_backoff_seconds: float = Field(default=1.0, alias="RETRY_BACKOFF_SECONDS")
    user_agent: str = Field(default="ResearchArticles/1.0", alias="USER_AGENT")

    # Object storage
    media_dir: str = Field(default="./data/media", alias="MEDIA_DIR")
    public_base_url: str = Field(default="http://127.0.0.1:8000", alias="PUBLIC_BASE_URL")
    signing_secret: str = Field(default="change-me", alias="SIGNING_SECRET")
    signed_url_ttl_days: int = Field(default=7, alias="SIGNED_URL_TTL_DAYS")
    image_cache_control: str = Field(default="public, max-age=31536000", alias="IMAGE_CACHE_CONTROL")
    audio_storage: str = Field(default="inline", alias="AUDIO_STORAGE")

    media_refresh_enabled: bool = Field(default=True, alias="MEDIA_REFRESH_ENABLED")
    media_refresh_interval_minutes: int = Field(default=360, alias="MEDIA_REFRESH_INTERVAL_MINUTES")
    media_refresh_margin_hours: int = Field(default=24, alias="MEDIA_REFRESH_MARGIN_HOURS")

    # Access
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    user_header: str = Field(default="X-User-Id", alias="USER_HEADER")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    default_page_limit: int = Field(default=9, alias="DEFAULT_PAGE_LIMIT")
    max_page_limit: int = Field(default=100, alias="MAX_PAGE_LIMIT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

settings = Settings()
