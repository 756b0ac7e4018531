# companylens/config/settings.py

# --- Standard Library Imports ---
import logging
from typing import Optional

# --- Pydantic V2 Imports ---
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# --- Database Settings ---
class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env",
                                      extra='ignore',
                                      populate_by_name=True)
    host: str = Field(..., alias="DB_HOST")
    port: int = Field(5432, alias="DB_PORT")
    user: str = Field(..., alias="DB_USER")
    password: str = Field(..., alias="DB_PASSWORD")
    name: str = Field(..., alias="DB_NAME")
    pool_size: int = Field(10, alias="DB_POOL_SIZE")
    max_overflow: int = Field(20, alias="DB_MAX_OVERFLOW")

    @property
    def url(self) -> str:
        return (f"postgresql+psycopg2://{self.user}:{self.password}@"
                f"{self.host}:{self.port}/{self.name}")


# --- Embedding API Settings ---
class EmbeddingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env",
                                      case_sensitive=False,
                                      extra='ignore',
                                      populate_by_name=True)
    api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("EMBEDDING_API_KEY", "OPENAI_API_KEY",
                                      "api_key"))
    base_url: str = Field("https://api.openai.com/v1",
                          alias="EMBEDDING_BASE_URL")
    model: str = Field("text-embedding-3-small", alias="EMBEDDING_MODEL")
    dimensions: int = Field(768, alias="EMBEDDING_DIMENSIONS", gt=0)
    timeout_seconds: float = Field(10.0, alias="EMBEDDING_TIMEOUT", gt=0)

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip('/')


# --- Search Settings ---
class SearchSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env",
                                      case_sensitive=False,
                                      extra='ignore',
                                      populate_by_name=True)
    # Scoring weights are fixed per deployment
    semantic_weight: float = Field(0.8, alias="SEARCH_SEMANTIC_WEIGHT", ge=0)
    name_weight: float = Field(0.15, alias="SEARCH_NAME_WEIGHT", ge=0)
    text_weight: float = Field(0.05, alias="SEARCH_TEXT_WEIGHT", ge=0)

    # Inclusion gate
    min_semantic_score: float = Field(0.25,
                                      alias="SEARCH_MIN_SEMANTIC_SCORE")
    min_name_score: float = Field(0.7, alias="SEARCH_MIN_NAME_SCORE")

    hnsw_ef_search: int = Field(200, alias="SEARCH_HNSW_EF_SEARCH", gt=0)

    max_query_length: int = Field(500, alias="SEARCH_MAX_QUERY_LENGTH", gt=0)
    default_limit: int = Field(50, alias="SEARCH_DEFAULT_LIMIT", gt=0)
    max_limit: int = Field(50, alias="SEARCH_MAX_LIMIT", gt=0)
    max_offset: int = Field(1000, alias="SEARCH_MAX_OFFSET", ge=0)

    query_workers: int = Field(4, alias="SEARCH_QUERY_WORKERS", gt=1)
    cancel_poll_interval: float = Field(0.05,
                                        alias="SEARCH_CANCEL_POLL_INTERVAL",
                                        gt=0)

    @model_validator(mode='after')
    def check_limits(self) -> 'SearchSettings':
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"SEARCH_DEFAULT_LIMIT ({self.default_limit}) cannot exceed "
                f"SEARCH_MAX_LIMIT ({self.max_limit})")
        return self


# --- Main App Settings ---
class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env",
                                      case_sensitive=False,
                                      extra='ignore')
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


# --- Singleton Pattern ---
_settings: Optional[AppSettings] = None
logger = logging.getLogger(__name__)


def get_settings() -> AppSettings:
    """Loads and returns the application settings singleton."""
    global _settings
    if _settings is None:
        try:
            _settings = AppSettings()
            logger.info("Application settings loaded successfully.")
        except Exception as e:
            logging.critical(f"FATAL: Failed to load AppSettings: {e}",
                             exc_info=True)
            raise RuntimeError(
                f"Could not load application settings: {e}") from e
    return _settings
