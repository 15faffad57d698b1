from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional, Dict, Any, Literal


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Alumni Records"
    VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False)

    # Database Settings
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./alumni_records.db")
    DB_ECHO: bool = Field(default=False)
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=1800)

    # Record Store Settings
    # "discard" drops fields outside an entity's fillable set, "reject" raises
    FILLABLE_POLICY: Literal["discard", "reject"] = Field(default="discard")
    DEFAULT_TENANT_ID: Optional[int] = Field(default=None)

    # Logging Settings
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: Optional[str] = Field(default=None)
    LOG_TO_FILE: bool = Field(default=False)

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator('FILLABLE_POLICY', mode='before')
    @classmethod
    def normalize_fillable_policy(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

# Initialize settings
settings = Settings()

# Helper Functions
def get_database_url() -> str:
    return settings.DATABASE_URL

def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")

def get_engine_options(url: Optional[str] = None) -> Dict[str, Any]:
    """Engine keyword arguments for the configured database.

    SQLite uses its own pool class, so pool sizing only applies elsewhere.
    """
    url = url or settings.DATABASE_URL
    options: Dict[str, Any] = {
        "echo": settings.DB_ECHO,
        "pool_pre_ping": True,
    }
    if is_sqlite_url(url):
        # Writers queue on the file lock instead of failing with "database is locked"
        options["connect_args"] = {"timeout": settings.DB_POOL_TIMEOUT}
    else:
        options.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        })
    return options

def get_logging_config() -> Dict[str, Any]:
    return {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR,
        "log_to_file": settings.LOG_TO_FILE
    }
