from datetime import date

import pytest

from treasurehunt.config.settings import get_logging_config, get_settings


@pytest.fixture
def fresh_settings(monkeypatch):
    # Keep the ambient environment from leaking into assertions.
    for name in (
        "TREASUREHUNT_CONFIG_PATH",
        "TREASUREHUNT_LOG_LEVEL",
        "TREASUREHUNT_LAUNCH_SECRET",
        "TREASUREHUNT_LAUNCH_MAX_AGE_SECONDS",
        "TREASUREHUNT_STORE_BACKEND",
        "TREASUREHUNT_STORE_PATH",
        "BOT_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_packaged_defaults_load(fresh_settings):
    settings = fresh_settings()
    assert settings.hunt.find_threshold_m == 5
    assert settings.hunt.default_radius_m == 100
    assert settings.hunt.launch_date == date(2024, 11, 23)
    assert settings.launch.max_age_seconds is None
    assert settings.store.backend == "memory"


def test_env_overrides_apply(fresh_settings, monkeypatch):
    monkeypatch.setenv("TREASUREHUNT_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("TREASUREHUNT_LAUNCH_SECRET", "s3cret")
    monkeypatch.setenv("TREASUREHUNT_LAUNCH_MAX_AGE_SECONDS", "3600")
    monkeypatch.setenv("TREASUREHUNT_STORE_BACKEND", "json")
    settings = fresh_settings()
    assert settings.app.log_level == "DEBUG"
    assert settings.launch.secret.get_secret_value() == "s3cret"
    assert settings.launch.max_age_seconds == 3600
    assert settings.store.backend == "json"
    # SecretStr keeps the secret out of reprs/logs.
    assert "s3cret" not in repr(settings)


def test_bot_token_is_accepted_as_launch_secret(fresh_settings, monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "from-bot-token")
    assert fresh_settings().launch.secret.get_secret_value() == "from-bot-token"


def test_external_config_file(fresh_settings, monkeypatch, tmp_path):
    path = tmp_path / "game.yaml"
    path.write_text("hunt:\n  find_threshold_m: 8\n  default_radius_m: 40\n", encoding="utf-8")
    monkeypatch.setenv("TREASUREHUNT_CONFIG_PATH", str(path))
    settings = fresh_settings()
    assert settings.hunt.find_threshold_m == 8
    assert settings.hunt.default_radius_m == 40
    assert settings.hunt.heat_max_distance_m == 100


def test_invalid_config_is_rejected(fresh_settings, monkeypatch, tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("TREASUREHUNT_CONFIG_PATH", str(path))
    with pytest.raises(ValueError, match="expected a mapping"):
        fresh_settings()


def test_logging_config_has_console_handler():
    config = get_logging_config()
    assert "console" in config["handlers"]
    assert config["root"]["handlers"] == ["console"]
