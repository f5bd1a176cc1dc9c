from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "ollama",
    "llm_model": "qwen3:8b",
    "ollama_url": "http://localhost:11434",
    "openai_base_url": "",
    "llm_thinking": False,
    "question_count": 20,
    "difficulty": "intermediate",
    "papers_dir": "papers",
    "reveal_chars_per_second": 120.0,
    "reveal_catchup_threshold": 80,
    "reveal_catchup_seconds": 0.75,
    "reveal_max_chars_per_second": 2000.0,
    "reveal_tick_interval": 1 / 60,
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    openai_base_url: str = DEFAULTS["openai_base_url"]
    llm_thinking: bool = DEFAULTS["llm_thinking"]
    question_count: int = DEFAULTS["question_count"]
    difficulty: str = DEFAULTS["difficulty"]
    papers_dir: str = DEFAULTS["papers_dir"]
    reveal_chars_per_second: float = DEFAULTS["reveal_chars_per_second"]
    reveal_catchup_threshold: int = DEFAULTS["reveal_catchup_threshold"]
    reveal_catchup_seconds: float = DEFAULTS["reveal_catchup_seconds"]
    reveal_max_chars_per_second: float = DEFAULTS["reveal_max_chars_per_second"]
    reveal_tick_interval: float = DEFAULTS["reveal_tick_interval"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def papers_full_path(self) -> Path:
        return self.project_root / self.papers_dir

    def reveal_options(self) -> dict:
        """Keyword arguments for PacedRevealController."""
        return {
            "chars_per_second": self.reveal_chars_per_second,
            "catchup_threshold": self.reveal_catchup_threshold,
            "catchup_seconds": self.reveal_catchup_seconds,
            "max_chars_per_second": self.reveal_max_chars_per_second,
        }

    def to_dict(self) -> dict:
        return {
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "ollama_url": self.ollama_url,
            "openai_base_url": self.openai_base_url,
            "llm_thinking": self.llm_thinking,
            "question_count": self.question_count,
            "difficulty": self.difficulty,
            "papers_dir": self.papers_dir,
            "reveal_chars_per_second": self.reveal_chars_per_second,
            "reveal_catchup_threshold": self.reveal_catchup_threshold,
            "reveal_catchup_seconds": self.reveal_catchup_seconds,
            "reveal_max_chars_per_second": self.reveal_max_chars_per_second,
            "reveal_tick_interval": self.reveal_tick_interval,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
