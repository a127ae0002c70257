"""Configuration model for SocraticReader."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class QuizProvider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"


_DEFAULT_MODELS = {
    QuizProvider.ANTHROPIC: "claude-sonnet-4-6",
    QuizProvider.OPENAI: "gpt-4o-mini",
    QuizProvider.OLLAMA: "llama3.2",
}

_DEFAULT_BASE_URLS = {
    QuizProvider.OPENAI: "https://api.openai.com/v1",
    QuizProvider.OLLAMA: "http://localhost:11434/v1",
}


class TrackerConfig(BaseModel):
    reading_rate_wpm: float = Field(default=200, gt=0)
    slack_factor: float = Field(default=1.5, gt=0)
    max_quizzes_per_session: int = Field(default=3, ge=0)
    tick_interval_ms: int = Field(default=1000, gt=0)

    @property
    def tick_interval(self) -> float:
        return self.tick_interval_ms / 1000


class QuizConfig(BaseModel):
    provider: QuizProvider = QuizProvider.ANTHROPIC
    api_key: Optional[str] = Field(default=None)
    base_url: Optional[str] = Field(default=None)
    model: Optional[str] = Field(default=None)
    max_tokens: int = 1024

    def get_provider(self) -> QuizProvider:
        override = os.environ.get("SOCRATICREADER_PROVIDER")
        return QuizProvider(override) if override else self.provider

    def get_api_key(self) -> Optional[str]:
        provider = self.get_provider()
        if provider == QuizProvider.OLLAMA:
            # Ollama ignores the key but the OpenAI SDK insists on one
            return self.api_key or "ollama"
        env_var = "ANTHROPIC_API_KEY" if provider == QuizProvider.ANTHROPIC else "OPENAI_API_KEY"
        return self.api_key or os.environ.get(env_var)

    def get_model(self) -> str:
        return (
            os.environ.get("SOCRATICREADER_MODEL")
            or self.model
            or _DEFAULT_MODELS[self.get_provider()]
        )

    def get_base_url(self) -> Optional[str]:
        return (
            os.environ.get("SOCRATICREADER_BASE_URL")
            or self.base_url
            or _DEFAULT_BASE_URLS.get(self.get_provider())
        )


class Settings(BaseModel):
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    quiz: QuizConfig = Field(default_factory=QuizConfig)
    data_dir: Path = Path.home() / ".socraticreader"

    @classmethod
    def load(cls) -> "Settings":
        config_path = Path.home() / ".socraticreader" / "config.yaml"
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.data_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
