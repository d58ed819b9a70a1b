import pytest

from workspace_hub.core.config import get_settings


def _set_minimum_production_env(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "prod-secret-key")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://app:password@db:5432/workspace_hub")
    monkeypatch.setenv("APP_PUBLIC_BASE_URL", "https://market.example.com")


def test_requires_secret_key_in_production(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_settings()

    get_settings.cache_clear()


def test_loads_environment_values(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./data/test_workspaces.sqlite")
    monkeypatch.setenv("INVITATION_TTL_DAYS", "3")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.env == "development"
    assert settings.secret_key == "test-secret"
    assert settings.database_url.endswith("test_workspaces.sqlite")
    assert settings.invitation_ttl_days == 3
    assert settings.auth_cookie_name == "sb-access-token"

    get_settings.cache_clear()


def test_accepts_complete_production_env(monkeypatch) -> None:
    _set_minimum_production_env(monkeypatch)
    get_settings.cache_clear()

    assert get_settings().app_public_base_url == "https://market.example.com"

    get_settings.cache_clear()


def test_requires_all_mandatory_production_secrets(monkeypatch) -> None:
    _set_minimum_production_env(monkeypatch)
    monkeypatch.setenv("APP_PUBLIC_BASE_URL", "")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="APP_PUBLIC_BASE_URL"):
        get_settings()

    get_settings.cache_clear()


def test_rejects_invalid_observability_limits(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "1.2")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="SENTRY_TRACES_SAMPLE_RATE"):
        get_settings()

    get_settings.cache_clear()


@pytest.mark.parametrize(
    "name",
    [
        "INVITATION_TTL_DAYS",
        "ACTIVITY_PAGE_MAX",
        "DASHBOARD_ACTIVITY_LIMIT",
        "DASHBOARD_MAX_WORKERS",
        "ACCESS_TOKEN_EXP_MINUTES",
    ],
)
def test_rejects_non_positive_limits(monkeypatch, name: str) -> None:
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv(name, "0")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match=name):
        get_settings()

    get_settings.cache_clear()
