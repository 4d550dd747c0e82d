from pydantic_settings import BaseSettings
from pydantic import Field

DEFAULT_SECRET = "change-me"


class Settings(BaseSettings):
    app_name: str = "EduLearn"
    app_env: str = Field("dev", alias="APP_ENV")
    secret_key: str = Field(DEFAULT_SECRET, alias="SECRET_KEY")
    session_cookie_name: str = Field("edulearn_session", alias="SESSION_COOKIE_NAME")
    session_expire_days: int = Field(7, alias="SESSION_EXPIRE_DAYS")
    secure_cookies: bool = Field(False, alias="SECURE_COOKIES")
    database_url: str = Field("sqlite:///./edulearn.db", alias="DATABASE_URL")
    seed_demo_data: bool = Field(False, alias="SEED_DEMO_DATA")

    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field("https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL")
    openrouter_app_title: str = Field("AI Homework Tutor", alias="OPENROUTER_APP_TITLE")
    default_model: str = Field("meta-llama/llama-3.2-3b-instruct:free", alias="LLM_MODEL")
    fallback_model: str = Field("meta-llama/llama-3.2-3b-instruct:free", alias="LLM_FALLBACK_MODEL")
    llm_timeout_seconds: int = Field(60, alias="LLM_TIMEOUT_SECONDS")

    token_limit: int = Field(10000, alias="TOKEN_LIMIT")
    token_status_cache_seconds: int = Field(30, alias="TOKEN_STATUS_CACHE_SECONDS")

    rate_limit_window_seconds: int = Field(60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_calls: int = Field(5, alias="RATE_LIMIT_MAX_CALLS")
    # comma separated peer addresses allowed to set X-Forwarded-For
    trusted_proxies: str = Field("", alias="TRUSTED_PROXIES")

    web_search_url: str = Field("https://api.duckduckgo.com/", alias="WEB_SEARCH_URL")
    web_search_timeout_seconds: int = Field(10, alias="WEB_SEARCH_TIMEOUT_SECONDS")

    models_cache_seconds: int = Field(1800, alias="MODELS_CACHE_SECONDS")
    model_sync_cooldown_seconds: int = Field(300, alias="MODEL_SYNC_COOLDOWN_SECONDS")

    admin_api_key: str | None = Field(default=None, alias="ADMIN_API_KEY")

    frontend_url: str = Field("http://localhost:3000", alias="FRONTEND_URL")
    cors_origins: str = Field("http://localhost:3000", alias="CORS_ORIGINS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")
    google_client_secret: str | None = Field(default=None, alias="GOOGLE_CLIENT_SECRET")
    google_redirect_uri: str = Field(
        "http://localhost:8000/auth/google/callback", alias="GOOGLE_REDIRECT_URI"
    )

    brightspace_client_id: str | None = Field(default=None, alias="BRIGHTSPACE_CLIENT_ID")
    brightspace_client_secret: str | None = Field(default=None, alias="BRIGHTSPACE_CLIENT_SECRET")
    brightspace_redirect_uri: str = Field(
        "http://localhost:8000/auth/brightspace/callback", alias="BRIGHTSPACE_REDIRECT_URI"
    )
    brightspace_auth_url: str = Field(
        "https://auth.brightspace.com/oauth2/auth", alias="BRIGHTSPACE_AUTH_URL"
    )
    brightspace_token_url: str = Field(
        "https://auth.brightspace.com/core/connect/token", alias="BRIGHTSPACE_TOKEN_URL"
    )
    brightspace_api_url: str = Field(
        "https://your-institution.brightspace.com", alias="BRIGHTSPACE_API_URL"
    )

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    @property
    def cors_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]

    @property
    def trusted_proxy_list(self) -> list[str]:
        return [item.strip() for item in self.trusted_proxies.split(",") if item.strip()]


def validate_runtime_config(current: "Settings") -> None:
    if current.app_env.lower() == "production" and current.secret_key == DEFAULT_SECRET:
        raise RuntimeError("SECRET_KEY must be set in production.")


settings = Settings()
