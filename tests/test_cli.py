import json

import pytest

from treasurehunt.cli import build_parser, main

SECRET = "123456789:TEST-bot-token"


@pytest.fixture(autouse=True)
def _no_ambient_secret(monkeypatch):
    from treasurehunt.config.settings import get_settings

    monkeypatch.delenv("TREASUREHUNT_LAUNCH_SECRET", raising=False)
    monkeypatch.delenv("BOT_TOKEN", raising=False)
    # dictConfig would bind the console handler to capsys' temporary stderr.
    monkeypatch.setattr("treasurehunt.cli.configure_logging", lambda *_a, **_k: None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_distance_command_json(capsys):
    assert main(["distance", "--from-lat", "0", "--from-lng", "0", "--to-lat", "0", "--to-lng", "1", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["distance_m"] == pytest.approx(111_195, abs=50)


def test_distance_command_rejects_invalid_coordinate(capsys):
    assert main(["distance", "--from-lat", "95", "--from-lng", "0", "--to-lat", "0", "--to-lng", "1"]) == 1
    assert "INVALID_COORDINATE" in capsys.readouterr().err


def test_sample_command_is_reproducible_with_seed(capsys):
    argv = ["sample", "--lat", "51.5", "--lng", "-0.12", "--radius-m", "50", "--count", "3", "--seed", "7", "--json"]
    assert main(argv) == 0
    first = json.loads(capsys.readouterr().out)
    assert main(argv) == 0
    second = json.loads(capsys.readouterr().out)
    assert first == second
    assert first["radius_m"] == 50
    assert len(first["targets"]) == 3


def test_sample_command_uses_radius_schedule(capsys):
    assert main(["sample", "--lat", "0", "--lng", "0", "--day", "2024-11-24", "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["radius_m"] == 25


def test_sample_command_rejects_bad_radius(capsys):
    assert main(["sample", "--lat", "0", "--lng", "0", "--radius-m", "-5"]) == 1
    assert "INVALID_RADIUS" in capsys.readouterr().err


def test_sign_then_verify_round_trip(capsys):
    assert main(["sign", "--user-id", "42", "--username", "alice", "--auth-date", "1767600000", "--secret", SECRET]) == 0
    payload = capsys.readouterr().out.strip()

    assert main(["verify", payload, "--secret", SECRET, "--asserted-username", "alice"]) == 0
    identity = json.loads(capsys.readouterr().out)
    assert identity["user_id"] == 42
    assert identity["username"] == "alice"

    assert main(["verify", payload, "--secret", "wrong"]) == 1
    assert "SIGNATURE_MISMATCH" in capsys.readouterr().err


def test_sign_without_secret_fails(capsys):
    assert main(["sign", "--user-id", "42"]) == 2
    assert "MISSING_SECRET" in capsys.readouterr().err


def test_verify_without_secret_reports_missing_secret(capsys):
    assert main(["verify", "hash=abc&user=%7B%22id%22%3A1%7D"]) == 1
    assert "MISSING_SECRET" in capsys.readouterr().err


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
