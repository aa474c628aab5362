from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="NODEFLOW_", env_ignore_empty=True, extra="ignore"
    )

    PROJECT_NAME: str = "nodeflow"
    LOG_LEVEL: str = "INFO"

    # Engine
    # Sibling branches are visited one after another unless this is enabled.
    PARALLEL_BRANCHES: bool = False
    MAX_PARALLEL_BRANCHES: int = 10
    # "per_edge" invokes a node once per incoming edge, "merge" once with all inputs
    FAN_IN_MODE: Literal["per_edge", "merge"] = "per_edge"

    # HTTP collaborator
    HTTP_TRANSPORT: Literal["httpx", "simulated"] = "httpx"
    HTTP_DEFAULT_TIMEOUT: float = 30.0

    # Upper bound for timer waits, in seconds
    WAIT_MAX_SECONDS: float = 3600.0

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return str(v).upper()

    @field_validator("MAX_PARALLEL_BRANCHES")
    @classmethod
    def _positive_parallelism(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_PARALLEL_BRANCHES must be at least 1")
        return v


settings = Settings()  # type: ignore
