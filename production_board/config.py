"""Runtime settings for the production board, read from ``BOARD_`` environment variables."""

from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .engine import EngineOptions, ReferencePolicy


class Settings(BaseSettings):
    # Advisory services
    optimization_api_url: str = "https://13.203.235.227/optimize"
    simulation_api_url: str = "https://13.203.235.227/generate-scenarios"
    request_timeout_seconds: float = 30.0
    verify_tls: bool = True

    # Board
    board_data_path: Optional[str] = None

    # Strictness
    strict_references: bool = False
    strict_responses: bool = False

    model_config = SettingsConfigDict(
        env_prefix="BOARD_", env_file=".env", env_file_encoding="utf-8"
    )

    def engine_options(self) -> EngineOptions:
        policy = ReferencePolicy.FAIL if self.strict_references else ReferencePolicy.SKIP
        return EngineOptions(missing_reference=policy)


def get_settings() -> Settings:
    return Settings()
