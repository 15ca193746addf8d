import pytest

from backend.config import load_settings


def test_root_and_health(client):
    assert client.get("/").get_json() == {"status": "gateway_ok"}
    assert client.get("/health").get_json() == {"status": "ok"}


def test_unknown_route_is_json(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_unexpected_error_is_masked(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.execute.side_effect = ValueError("internal detail")

    response = client.get("/event/getevent")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal Server Error"}


def test_load_settings_requires_secret(monkeypatch):
    monkeypatch.setattr("backend.config.load_dotenv", lambda: None)
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/test")

    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        load_settings()


def test_load_settings_requires_database_url(monkeypatch):
    monkeypatch.setattr("backend.config.load_dotenv", lambda: None)
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        load_settings()


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setattr("backend.config.load_dotenv", lambda: None)
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/test")
    monkeypatch.setenv("TOKEN_EXPIRATION_MINUTES", "30")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")

    settings = load_settings()

    assert settings.jwt_secret == "s3cret"
    assert settings.token_expiration_minutes == 30
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
