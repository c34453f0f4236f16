from songcatalog.core.config import Settings


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for var in ("DATABASE_URL", "RELEASE_DATE_POLICY", "ENRICH_FIXTURE_FALLBACK", "EXTERNAL_API_TIMEOUT", "PORT"):
        monkeypatch.delenv(var, raising=False)

    settings = Settings.from_env()

    assert settings.database_url == "sqlite+aiosqlite:///./songs.db"
    assert settings.release_date_policy == "now"
    assert settings.enrich_fixture_fallback is False
    assert settings.external_api_timeout == 10.0
    assert settings.port == 8080


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EXTERNAL_API_BASE_URL", "http://api.example/")
    monkeypatch.setenv("RELEASE_DATE_POLICY", "REJECT")
    monkeypatch.setenv("ENRICH_FIXTURE_FALLBACK", "yes")
    monkeypatch.setenv("EXTERNAL_API_TIMEOUT", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.external_api_base_url == "http://api.example"
    assert settings.release_date_policy == "reject"
    assert settings.enrich_fixture_fallback is True
    assert settings.external_api_timeout == 2.5
    assert settings.log_level == "DEBUG"


def test_invalid_values_fall_back(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RELEASE_DATE_POLICY", "sometimes")
    monkeypatch.setenv("EXTERNAL_API_TIMEOUT", "soon")
    monkeypatch.setenv("PORT", "http")

    settings = Settings.from_env()

    assert settings.release_date_policy == "now"
    assert settings.external_api_timeout == 10.0
    assert settings.port == 8080


def test_dotenv_file_is_loaded(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ENRICH_FIXTURE_PATH", raising=False)
    (tmp_path / ".env").write_text("ENRICH_FIXTURE_PATH=custom.json\n", encoding="utf-8")

    settings = Settings.from_env()

    assert settings.enrich_fixture_path == "custom.json"
    monkeypatch.delenv("ENRICH_FIXTURE_PATH", raising=False)
