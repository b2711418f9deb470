import uuid

import pytest

from audits import validate_url
from conftest import make_settings
from core.exceptions import ValidationError
from db.repositories import website_name_from_url


@pytest.mark.parametrize(
    "overrides, fallback",
    [
        ({"environment": "production", "testing_mode": True}, False),
        ({"environment": "development", "testing_mode": False}, True),
        ({"environment": "test", "testing_mode": True}, True),
        ({"environment": "test", "testing_mode": False}, False),
    ],
)
def test_mock_fallback_policy(overrides, fallback):
    settings = make_settings(**overrides)
    assert settings.allow_mock_fallback is fallback
    assert settings.allow_testing_bypass is fallback


def test_sync_database_url():
    assert (
        make_settings(database_url="postgresql+asyncpg://u:p@db:5432/app").sync_database_url
        == "postgresql+psycopg2://u:p@db:5432/app"
    )
    assert make_settings(database_url="sqlite+aiosqlite:///tmp.db").sync_database_url == "sqlite:///tmp.db"


def test_testing_user_id_is_a_uuid():
    uuid.UUID(make_settings().testing_user_id)


@pytest.mark.parametrize("url", ["https://example.com", "http://localhost:3000/path?q=1", "  https://example.com  "])
def test_validate_url_accepts(url):
    assert validate_url(url) == url.strip()


@pytest.mark.parametrize(
    "url",
    [
        "",
        None,
        "example.com",
        "ftp://example.com",
        "https://",
        "javascript:alert(1)",
        "http://:80",
        "https://user@",
        "https://exa mple.com",
        "http://example.com:notaport",
    ],
)
def test_validate_url_rejects(url):
    with pytest.raises(ValidationError):
        validate_url(url)


def test_website_name_from_url():
    assert website_name_from_url("https://example.com/") == "example.com"
    assert website_name_from_url("http://example.com/blog") == "example.com/blog"
