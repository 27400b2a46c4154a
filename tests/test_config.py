import json

import pytest

from monitor.config import DEFAULT_ORGANIZATIONS, Settings, load_organizations


def test_defaults_without_env(monkeypatch):
    for key in ("REQUEST_TIMEOUT_MS", "MAX_RETRIES", "BATCH_DELAY_MS", "ALLOWED_ORIGINS", "ALLOW_ORG_MUTATION", "SCRAPER_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    settings = Settings.from_env()
    assert settings.request_timeout_s == 12.0
    assert settings.max_retries == 2
    assert settings.batch_delay_s == 0.6
    assert settings.allowed_origins == []
    assert settings.allow_org_mutation is False
    assert settings.scraper_enabled is True


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT_MS", "5000")
    monkeypatch.setenv("MAX_RETRIES", "4")
    monkeypatch.setenv("BATCH_DELAY_MS", "250")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("ALLOW_ORG_MUTATION", "yes")
    settings = Settings.from_env()
    assert settings.request_timeout_s == 5.0
    assert settings.max_retries == 4
    assert settings.batch_delay_s == 0.25
    assert settings.allowed_origins == ["https://a.example", "https://b.example"]
    assert settings.allow_org_mutation is True


def test_invalid_number_falls_back(monkeypatch):
    monkeypatch.setenv("BATCH_DELAY_MS", "soon")
    assert Settings.from_env().batch_delay_ms == 600


def test_builtin_seed_list_is_a_copy():
    seeds = load_organizations()
    seeds[0]["name"] = "changed"
    assert DEFAULT_ORGANIZATIONS[0]["name"] == "Brother Bill's Helping Hand"
    assert len(seeds) == 8


def test_seed_file(tmp_path):
    path = tmp_path / "organizations.json"
    path.write_text(json.dumps([{"name": "A", "url": "https://host/organization/a-b"}, "junk"]))
    assert load_organizations(str(path)) == [{"name": "A", "url": "https://host/organization/a-b"}]


def test_seed_file_must_be_array(tmp_path):
    path = tmp_path / "organizations.json"
    path.write_text(json.dumps({"name": "A"}))
    with pytest.raises(ValueError):
        load_organizations(str(path))


def test_missing_seed_file_falls_back_to_builtin(tmp_path, caplog):
    missing = tmp_path / "nope.json"
    with caplog.at_level("WARNING", logger="ntgd-monitor"):
        seeds = load_organizations(str(missing))
    assert seeds == DEFAULT_ORGANIZATIONS
    assert seeds is not DEFAULT_ORGANIZATIONS
    assert "No seed file found" in caplog.text


def test_reseed_token_from_env(monkeypatch):
    monkeypatch.delenv("RESEED_TOKEN", raising=False)
    assert Settings.from_env().reseed_token is None
    monkeypatch.setenv("RESEED_TOKEN", "")
    assert Settings.from_env().reseed_token is None
    monkeypatch.setenv("RESEED_TOKEN", "s3cret")
    assert Settings.from_env().reseed_token == "s3cret"
