from casedeck.config import Settings


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("DAILY_REQUEST_LIMIT", "7")
    monkeypatch.setenv("log_level", "DEBUG")

    settings = Settings(_env_file=None)

    assert settings.daily_request_limit == 7
    assert settings.log_level == "DEBUG"
    assert settings.max_slides == 8


def test_settings_read_the_dotenv_file(tmp_path, monkeypatch):
    monkeypatch.delenv("REQUESTS_PER_MINUTE", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("REQUESTS_PER_MINUTE=12\n")

    assert Settings.model_config["env_file"] == ".env"
    assert Settings().requests_per_minute == 12
