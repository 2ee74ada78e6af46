from datetime import datetime, timedelta, timezone

import pytest

from treasurehunt.core.errors import IdentityMismatch, SignatureMismatch, VerificationError
from treasurehunt.game.finds import FindLedger, ScoreKeeper
from treasurehunt.launch.verifier import VerifiedIdentity, sign_launch_data
from treasurehunt.store.scores import InMemoryScoreStore, JsonFileScoreStore

SECRET = "123456789:TEST-bot-token"
NOW = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def _identity(username: str | None = "alice", user_id: int = 1) -> VerifiedIdentity:
    return VerifiedIdentity(user_id=user_id, username=username, first_name=None, last_name=None, validated_at=NOW)


def _payload(username: str = "alice", user_id: int = 1) -> str:
    return sign_launch_data({"user": {"id": user_id, "username": username}, "auth_date": int(NOW.timestamp())}, SECRET)


class FailingStore(InMemoryScoreStore):
    def __init__(self):
        super().__init__()
        self.fail = True

    def upsert(self, username, score, updated_at):
        if self.fail:
            raise RuntimeError("store down")
        return super().upsert(username, score, updated_at)


def test_in_memory_store_defaults_to_zero_and_upserts():
    store = InMemoryScoreStore()
    assert store.fetch_score("nobody") == 0
    store.upsert("alice", 3, NOW)
    store.upsert("alice", 4, NOW)
    assert store.fetch_score("alice") == 4
    assert store.get("alice").updated_at == NOW


def test_store_rejects_negative_scores_and_empty_usernames():
    store = InMemoryScoreStore()
    with pytest.raises(ValueError):
        store.upsert("alice", -1, NOW)
    with pytest.raises(ValueError):
        store.upsert("", 1, NOW)


def test_json_store_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "scores.json"
    JsonFileScoreStore(path).upsert("alice", 2, NOW)

    reopened = JsonFileScoreStore(path)
    assert reopened.fetch_score("alice") == 2
    assert reopened.fetch_score("bob") == 0
    assert reopened.get("alice").updated_at == NOW
    assert not path.with_suffix(".tmp").exists()


def test_repeated_find_for_same_target_counts_once():
    keeper = ScoreKeeper(InMemoryScoreStore())
    first = keeper.record_find(_identity(), "target-1", at=NOW)
    again = keeper.record_find(_identity(), "target-1")
    assert first.recorded and first.score == 1
    assert not again.recorded and again.score == 1
    assert again.event == first.event
    assert keeper.store.fetch_score("alice") == 1


def test_distinct_targets_and_players_each_count():
    keeper = ScoreKeeper(InMemoryScoreStore())
    keeper.record_find(_identity(), "t1")
    keeper.record_find(_identity(), "t2")
    keeper.record_find(_identity("bob", user_id=2), "t1")
    assert keeper.store.fetch_score("alice") == 2
    assert keeper.store.fetch_score("bob") == 1
    assert len(keeper.ledger) == 3
    assert ("1", "t1") in keeper.ledger


def test_ledger_prune_drops_only_old_claims():
    ledger = FindLedger()
    ledger.claim("1", "old", at=NOW - timedelta(days=2))
    ledger.claim("1", "new", at=NOW)
    assert ledger.prune(NOW - timedelta(days=1)) == 1
    assert ("1", "old") not in ledger
    assert ("1", "new") in ledger
    assert ledger.prune(NOW - timedelta(days=1)) == 0


def test_identity_without_username_cannot_score():
    keeper = ScoreKeeper(InMemoryScoreStore())
    with pytest.raises(IdentityMismatch):
        keeper.record_find(_identity(username=None), "t1")
    assert len(keeper.ledger) == 0


def test_failed_write_releases_the_claim_for_retry():
    store = FailingStore()
    keeper = ScoreKeeper(store)
    with pytest.raises(RuntimeError):
        keeper.record_find(_identity(), "t1")
    store.fail = False
    assert keeper.record_find(_identity(), "t1").recorded
    assert store.fetch_score("alice") == 1


def test_verify_and_record_writes_for_valid_payload():
    keeper = ScoreKeeper(InMemoryScoreStore(), FindLedger())
    outcome = keeper.verify_and_record(_payload(), SECRET, "t1", asserted_username="alice", now=NOW)
    assert outcome.recorded
    assert outcome.as_dict()["username"] == "alice"
    assert outcome.event.recorded_at == NOW


@pytest.mark.parametrize(
    "payload,secret,asserted",
    [
        (_payload(), "wrong-secret", None),
        (_payload(), None, None),
        ("hash=abc", SECRET, None),
        (_payload(), SECRET, "mallory"),
    ],
)
def test_no_write_on_any_verification_failure(payload, secret, asserted):
    store = InMemoryScoreStore()
    keeper = ScoreKeeper(store)
    with pytest.raises(VerificationError):
        keeper.verify_and_record(payload, secret, "t1", asserted_username=asserted, now=NOW)
    assert store.get("alice") is None
    assert store.get("mallory") is None
    assert len(keeper.ledger) == 0


def test_verification_failure_is_logged(caplog):
    keeper = ScoreKeeper(InMemoryScoreStore())
    with caplog.at_level("WARNING", logger="treasurehunt.game.finds"):
        with pytest.raises(SignatureMismatch):
            keeper.verify_and_record(_payload(), "wrong-secret", "t1", now=NOW)
    assert "SIGNATURE_MISMATCH" in caplog.text
    assert SECRET not in caplog.text
