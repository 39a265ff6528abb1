import pytest
from pydantic import ValidationError

from dynasession.server.session.schemas import CookieOptions, StoreOptions


def test_store_options_defaults():
    options = StoreOptions()

    assert options.prefix == "sess:"
    assert options.table == "sessions"
    assert options.region == "us-east-1"
    assert options.reap_interval == 600_000
    assert options.read_capacity_units == 5
    assert options.write_capacity_units == 5


def test_store_options_allow_empty_prefix():
    assert StoreOptions(prefix="").prefix == ""
    assert StoreOptions(prefix=None).prefix == "sess:"


def test_store_options_reject_non_positive_capacity():
    with pytest.raises(ValidationError):
        StoreOptions(read_capacity_units=0)


def test_store_options_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_TABLE", "web_sessions")
    monkeypatch.setenv("SESSION_PREFIX", "app:")
    monkeypatch.setenv("SESSION_REAP_INTERVAL_MS", "0")
    monkeypatch.setenv("AWS_REGION", "ap-south-1")
    monkeypatch.setenv("DYNAMODB_ENDPOINT_URL", "http://localhost:8000")

    options = StoreOptions.from_env()

    assert options.table == "web_sessions"
    assert options.prefix == "app:"
    assert options.reap_interval == 0
    assert options.region == "ap-south-1"
    assert options.endpoint_url == "http://localhost:8000"
    assert options.aws_config_path is None


def test_store_options_from_env_rejects_bad_interval(monkeypatch):
    monkeypatch.setenv("SESSION_REAP_INTERVAL_MS", "often")

    with pytest.raises(ValueError):
        StoreOptions.from_env()


def test_cookie_options_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_COOKIE_NAME", "app_sid")
    monkeypatch.setenv("SESSION_MAX_AGE", "3600")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "true")

    cookie = CookieOptions.from_env()

    assert cookie.name == "app_sid"
    assert cookie.max_age == 3600
    assert cookie.secure is True


def test_cookie_options_validate_same_site():
    assert CookieOptions(same_site="Strict").same_site == "strict"
    with pytest.raises(ValidationError):
        CookieOptions(same_site="sometimes")
