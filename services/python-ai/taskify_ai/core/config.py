from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    SERVICE_NAME: str = Field(default="Taskify AI Service")
    SERVICE_VERSION: str = Field(default="1.0.0")
    ENVIRONMENT: str = Field(default="development")

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: Literal["text", "json"] = Field(default="text")

    # Completion service
    OPENAI_API_KEY: Optional[str] = Field(default=None)
    COMPLETION_MODEL: str = Field(default="gpt-4o-mini")
    COMPLETION_TEMPERATURE: float = Field(default=0.7)

    # Productivity backend the plans are executed against
    BACKEND_API_URL: str = Field(default="http://localhost:5000/api")
    BACKEND_TIMEOUT_S: float = Field(default=30.0)

    JWT_SECRET: str = Field(default="dev-only-secret")
    JWT_ALGORITHM: str = Field(default="HS256")

    FRONTEND_URL: str = Field(default="http://localhost:5173")
    CONVERSATION_LIST_LIMIT: int = Field(default=50, ge=1)


@lru_cache
def get_settings() -> Settings:
    return Settings()
