from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    Production provides env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API keys
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = ""
    GEMINI_MAX_RETRIES: int = 5
    GEMINI_MAX_BACKOFF_SECONDS: float = 20.0

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"

    LOG_LEVEL: str = "INFO"

    # Presentation
    CURRENCY_SYMBOL: str = "€"
    UNKNOWN_STORE_NAME: str = "Unknown store"

    # Combination search is bounded to the best-covering stores:
    # pairs look at the top PAIR_SEARCH_LIMIT, triples at the top TRIPLE_SEARCH_LIMIT.
    PAIR_SEARCH_LIMIT: int = 10
    TRIPLE_SEARCH_LIMIT: int = 8
    MAX_RECOMMENDATIONS: int = 2


# ✅ MUST EXIST: other modules import this
settings = Settings()
