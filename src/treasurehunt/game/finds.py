"""
Find recording and score keeping.

Score changes happen only through an explicit "record find" event:
- the caller first verifies the launch payload (`treasurehunt.launch.verifier.verify`),
- `ScoreKeeper.record_find` then claims the (player_id, target_id) pair in a
  `FindLedger`; a pair that was already claimed is a no-op,
- only a newly claimed pair increments the player's score in the `ScoreStore`.

`verify_and_record` chains both steps so no write can happen with an identity
that was not produced by the verifier in the same call.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from treasurehunt.core.errors import IdentityMismatch, VerificationError
from treasurehunt.core.time import ensure_utc, utc_now
from treasurehunt.launch.verifier import VerifiedIdentity, verify
from treasurehunt.store.scores import ScoreStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FindEvent:
    player_id: str
    target_id: str
    recorded_at: datetime


@dataclass(frozen=True)
class FindOutcome:
    """Result of a `record_find` call (`recorded=False` means duplicate)."""

    recorded: bool
    username: str
    score: int
    event: FindEvent

    def as_dict(self) -> dict[str, object]:
        return {
            "recorded": self.recorded,
            "username": self.username,
            "score": self.score,
            "player_id": self.event.player_id,
            "target_id": self.event.target_id,
            "recorded_at": self.event.recorded_at.isoformat(),
        }


class FindLedger:
    """In-process set of (player_id, target_id) pairs already counted.

    Entries are kept until `prune()` drops them, so a long-running process
    grows by one entry per recorded find. Targets are drawn per hunt, so claims
    older than the oldest hunt still in play can be pruned safely.
    """

    def __init__(self) -> None:
        self._events: dict[tuple[str, str], FindEvent] = {}
        self._lock = threading.Lock()

    def claim(self, player_id: str, target_id: str, *, at: datetime | None = None) -> tuple[FindEvent, bool]:
        """Return `(event, True)` for a new pair, or the original `(event, False)`."""
        key = (str(player_id), str(target_id))
        with self._lock:
            existing = self._events.get(key)
            if existing is not None:
                return existing, False
            event = FindEvent(
                player_id=key[0],
                target_id=key[1],
                recorded_at=ensure_utc(at) if at is not None else utc_now(),
            )
            self._events[key] = event
            return event, True

    def release(self, player_id: str, target_id: str) -> None:
        with self._lock:
            self._events.pop((str(player_id), str(target_id)), None)

    def prune(self, before: datetime) -> int:
        """Forget claims recorded before `before`; return how many were dropped."""
        cutoff = ensure_utc(before)
        with self._lock:
            stale = [key for key, event in self._events.items() if event.recorded_at < cutoff]
            for key in stale:
                del self._events[key]
        if stale:
            logger.info("Pruned %d find claims recorded before %s", len(stale), cutoff.isoformat())
        return len(stale)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class ScoreKeeper:
    def __init__(self, store: ScoreStore, ledger: FindLedger | None = None, *, points_per_find: int = 1):
        if int(points_per_find) <= 0:
            raise ValueError("points_per_find must be > 0")
        self._store = store
        self._ledger = ledger if ledger is not None else FindLedger()
        self._points = int(points_per_find)
        self._lock = threading.Lock()

    @property
    def store(self) -> ScoreStore:
        return self._store

    @property
    def ledger(self) -> FindLedger:
        return self._ledger

    def record_find(
        self,
        identity: VerifiedIdentity,
        target_id: str,
        *,
        at: datetime | None = None,
    ) -> FindOutcome:
        if not identity.username:
            raise IdentityMismatch("signed launch identity has no username to score under")
        if not target_id:
            raise ValueError("target_id must be non-empty")

        username = identity.username
        player_id = str(identity.user_id)
        with self._lock:
            event, is_new = self._ledger.claim(player_id, target_id, at=at)
            if not is_new:
                logger.info("Duplicate find ignored: player=%s target=%s", player_id, target_id)
                return FindOutcome(
                    recorded=False,
                    username=username,
                    score=self._store.fetch_score(username),
                    event=event,
                )
            try:
                score = self._store.fetch_score(username) + self._points
                self._store.upsert(username, score, event.recorded_at)
            except Exception:
                # Let the same find be retried after a failed write.
                self._ledger.release(player_id, target_id)
                raise

        logger.info("Find recorded: player=%s target=%s score=%d", player_id, target_id, score)
        return FindOutcome(recorded=True, username=username, score=score, event=event)

    def verify_and_record(
        self,
        payload: str,
        secret: str | bytes | None,
        target_id: str,
        *,
        asserted_username: str | None = None,
        max_age_seconds: int | None = None,
        now: datetime | None = None,
    ) -> FindOutcome:
        """Verify `payload` and, only on success, record the find for its identity."""
        try:
            identity = verify(
                payload,
                secret,
                asserted_username=asserted_username,
                max_age_seconds=max_age_seconds,
                now=now,
            )
        except VerificationError as exc:
            logger.warning("Score write withheld: %s (%s)", exc.code, exc.message)
            raise
        return self.record_find(identity, target_id, at=now)
