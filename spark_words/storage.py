"""Minimal JSON-file persistence for finished papers."""
from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

from spark_words.models import QuestionSet

_log = logging.getLogger("spark_words.storage")

PersistenceSink = Callable[[QuestionSet], None]


def paper_path(papers_dir: Path, paper_id: str) -> Path:
    return papers_dir / f"{paper_id}.json"


def save_paper(papers_dir: Path) -> PersistenceSink:
    """Return a sink that writes each finished paper to ``<papers_dir>/<id>.json``."""

    def _save(paper: QuestionSet) -> None:
        papers_dir.mkdir(parents=True, exist_ok=True)
        path = paper_path(papers_dir, paper.id)
        path.write_text(json.dumps(paper.to_dict(), indent=4, ensure_ascii=False) + "\n")
        _log.info("Saved paper %s -> %s", paper.id, path)

    return _save


def load_paper(path: Path) -> dict:
    return json.loads(path.read_text())
