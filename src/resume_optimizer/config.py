"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 16000
    temperature: float = 0.4
    max_retries: int = 3
    timeout: int = 120

    def __post_init__(self) -> None:
        if not 1 <= self.timeout <= 600:
            raise ValueError(f"llm.timeout must be between 1 and 600, got {self.timeout}")
        if not 1 <= self.max_tokens <= 64000:
            raise ValueError(f"llm.max_tokens must be between 1 and 64000, got {self.max_tokens}")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"llm.temperature must be between 0 and 1, got {self.temperature}")
        if not 0 <= self.max_retries <= 10:
            raise ValueError(f"llm.max_retries must be between 0 and 10, got {self.max_retries}")


@dataclass(frozen=True)
class APIConfig:
    """Remote endpoints used when generation runs through the web backend."""

    base_url: str = "http://localhost:3000"
    analyze_path: str = "/api/analyze"
    verify_payment_path: str = "/api/verify-payment"
    timeout: int = 300

    def __post_init__(self) -> None:
        if not 1 <= self.timeout <= 600:
            raise ValueError(f"api.timeout must be between 1 and 600, got {self.timeout}")


@dataclass(frozen=True)
class StorageConfig:
    state_db_path: str = "~/.resume-optimizer/state.db"
    usage_db_path: str = "~/.resume-optimizer/usage.db"
    subscribers_db_path: str = "~/.resume-optimizer/subscribers.db"

    @property
    def resolved_state_db_path(self) -> Path:
        return Path(self.state_db_path).expanduser()

    @property
    def resolved_usage_db_path(self) -> Path:
        return Path(self.usage_db_path).expanduser()

    @property
    def resolved_subscribers_db_path(self) -> Path:
        return Path(self.subscribers_db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    api: APIConfig = field(default_factory=APIConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        # Look for config.yaml relative to the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        api=APIConfig(**raw.get("api", {})),
        storage=StorageConfig(**raw.get("storage", {})),
    )
