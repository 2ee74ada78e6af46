from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from treasurehunt.core.time import ensure_utc

"""
Score stores.

The game only needs two operations from persistence:
- `upsert(username, score, updated_at)`: one record per username,
- `fetch_score(username)`: current score, 0 when the player has none.

Two small implementations ship with the package:
- `InMemoryScoreStore` for tests and single-process demos,
- `JsonFileScoreStore`, a single JSON document on disk written via temp file +
  atomic replace (dev use; real deployments plug in their own store).
"""


@dataclass(frozen=True)
class ScoreRecord:
    username: str
    score: int
    updated_at: datetime

    def as_dict(self) -> dict[str, object]:
        return {
            "username": self.username,
            "score": int(self.score),
            "updated_at": self.updated_at.isoformat(),
        }


class ScoreStore(Protocol):
    def upsert(self, username: str, score: int, updated_at: datetime) -> ScoreRecord: ...

    def fetch_score(self, username: str) -> int: ...


def _check_record(username: str, score: int) -> None:
    if not username:
        raise ValueError("username must be non-empty")
    if int(score) < 0:
        raise ValueError("score must be >= 0")


class InMemoryScoreStore:
    """A dict-backed store keyed uniquely by username."""

    def __init__(self) -> None:
        self._records: dict[str, ScoreRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, username: str, score: int, updated_at: datetime) -> ScoreRecord:
        _check_record(username, score)
        record = ScoreRecord(username=username, score=int(score), updated_at=ensure_utc(updated_at))
        with self._lock:
            self._records[username] = record
        return record

    def fetch_score(self, username: str) -> int:
        with self._lock:
            record = self._records.get(username)
        return record.score if record else 0

    def get(self, username: str) -> ScoreRecord | None:
        with self._lock:
            return self._records.get(username)


class JsonFileScoreStore:
    """A filesystem-backed store: `{username: {score, updated_at}}` in one JSON file."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, dict[str, object]]:
        if not self._path.exists():
            return {}
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid score file {self._path}; expected a JSON object.")
        return raw

    def _write(self, data: dict[str, dict[str, object]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self._path)

    def upsert(self, username: str, score: int, updated_at: datetime) -> ScoreRecord:
        _check_record(username, score)
        record = ScoreRecord(username=username, score=int(score), updated_at=ensure_utc(updated_at))
        with self._lock:
            data = self._read()
            data[username] = {"score": record.score, "updated_at": record.updated_at.isoformat()}
            self._write(data)
        return record

    def fetch_score(self, username: str) -> int:
        with self._lock:
            entry = self._read().get(username)
        if not entry:
            return 0
        return int(entry.get("score", 0))

    def get(self, username: str) -> ScoreRecord | None:
        with self._lock:
            entry = self._read().get(username)
        if not entry:
            return None
        return ScoreRecord(
            username=username,
            score=int(entry.get("score", 0)),
            updated_at=datetime.fromisoformat(str(entry["updated_at"])),
        )
