import json
from typing import Annotated, List
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    # API Settings
    PROJECT_NAME: str = "Catalog Options"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Database Settings
    DATABASE_URL: str = "sqlite:///./catalog_options.db"
    SQL_ECHO: bool = False

    # CORS Settings
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Redis Settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 3600

    # Logging
    LOG_LEVEL: str = "INFO"

    # Catalog behaviour
    CATEGORY_ATTRIBUTE_DELETE_POLICY: str = "detach"
    PRICE_DECIMAL_PLACES: int = 2

    @field_validator("CATEGORY_ATTRIBUTE_DELETE_POLICY")
    @classmethod
    def check_delete_policy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("detach", "cascade"):
            raise ValueError("CATEGORY_ATTRIBUTE_DELETE_POLICY must be 'detach' or 'cascade'")
        return v

    @property
    def REDIS_URL(self) -> str:
        """Get full Redis URL."""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
