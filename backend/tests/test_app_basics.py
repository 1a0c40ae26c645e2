import logging

import pytest

from medicore.core.settings import Settings, validate_settings


def test_health(api_client):
    res = api_client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "MediCore API is running"
    assert body["environment"] == "test"
    assert body["timestamp"]


def test_unknown_route_uses_error_envelope(api_client):
    res = api_client.get("/api/nope")
    assert res.status_code == 404
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Not Found"
    assert "timestamp" in body


def test_malformed_json_is_bad_request(api_client, auth_headers):
    res = api_client.post(
        "/api/patients",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["success"] is False


def _settings(**overrides) -> Settings:
    values = {
        "app_env": "production",
        "secret_key": "s" * 48,
        "admin_email": "ops@medicore.org",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_validate_settings_accepts_strong_production_config():
    validate_settings(_settings())


@pytest.mark.parametrize(
    "overrides",
    [
        {"secret_key": "change-me"},
        {"secret_key": "short"},
        {"admin_email": "admin@example.com"},
        {"default_appointment_duration": 0},
    ],
)
def test_validate_settings_rejects_weak_production_config(overrides):
    with pytest.raises(RuntimeError):
        validate_settings(_settings(**overrides))


def test_validate_settings_warns_outside_production(caplog):
    settings = _settings(app_env="development", secret_key="change-me")
    with caplog.at_level(logging.WARNING, logger="medicore.config"):
        validate_settings(settings)
    assert "SECRET_KEY is missing or too weak" in caplog.text


def test_validate_settings_falls_back_to_jwt_secret():
    settings = _settings(secret_key=None, jwt_secret="j" * 40)
    validate_settings(settings)
    assert settings.secret_key == "j" * 40


def test_empty_integers_use_defaults():
    settings = _settings(id_allocation_retries="", default_appointment_duration="")
    assert settings.id_allocation_retries == 3
    assert settings.default_appointment_duration == 30
