from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from dynasession.config.loader import get_bool_env, get_int_env, get_str_env

DEFAULT_PREFIX = "sess:"
DEFAULT_TABLE = "sessions"
DEFAULT_REGION = "us-east-1"
DEFAULT_REAP_INTERVAL_MS = 10 * 60 * 1000


class StoreOptions(BaseModel):
    prefix: str = Field(default=DEFAULT_PREFIX, description="Prepended to every session id.")
    table: str = Field(default=DEFAULT_TABLE, description="Target DynamoDB table name.")
    region: str = Field(default=DEFAULT_REGION)
    aws_config_path: Optional[str] = Field(
        default=None,
        description="JSON credentials file with accessKeyId, secretAccessKey and optional region.",
    )
    endpoint_url: Optional[str] = Field(default=None, description="Endpoint override, e.g. DynamoDB Local.")
    reap_interval: int = Field(
        default=DEFAULT_REAP_INTERVAL_MS,
        description="Reap sweep period in milliseconds; zero or less disables the sweep.",
    )
    read_capacity_units: int = Field(default=5)
    write_capacity_units: int = Field(default=5)

    @field_validator("prefix", mode="before")
    @classmethod
    def default_prefix(cls, value: Optional[str]) -> str:
        return DEFAULT_PREFIX if value is None else value

    @field_validator("table", mode="before")
    @classmethod
    def default_table(cls, value: Optional[str]) -> str:
        return value or DEFAULT_TABLE

    @field_validator("region", mode="before")
    @classmethod
    def default_region(cls, value: Optional[str]) -> str:
        return value or DEFAULT_REGION

    @field_validator("read_capacity_units", "write_capacity_units")
    @classmethod
    def positive_capacity(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Capacity units must be positive")
        return value

    @classmethod
    def from_env(cls) -> "StoreOptions":
        return cls(
            prefix=get_str_env("SESSION_PREFIX", None),
            table=get_str_env("SESSION_TABLE", DEFAULT_TABLE),
            region=get_str_env("AWS_REGION", DEFAULT_REGION),
            aws_config_path=get_str_env("SESSION_AWS_CONFIG_PATH", None) or None,
            endpoint_url=get_str_env("DYNAMODB_ENDPOINT_URL", None) or None,
            reap_interval=get_int_env("SESSION_REAP_INTERVAL_MS", DEFAULT_REAP_INTERVAL_MS),
            read_capacity_units=get_int_env("SESSION_READ_CAPACITY_UNITS", 5),
            write_capacity_units=get_int_env("SESSION_WRITE_CAPACITY_UNITS", 5),
        )


class CookieOptions(BaseModel):
    name: str = "sid"
    max_age: int = Field(default=24 * 60 * 60, description="Cookie lifetime in seconds.")
    path: str = "/"
    secure: bool = False
    same_site: str = "lax"

    @field_validator("same_site")
    @classmethod
    def validate_same_site(cls, value: str) -> str:
        value = value.lower()
        if value not in {"lax", "strict", "none"}:
            raise ValueError("same_site must be one of lax, strict, none")
        return value

    @classmethod
    def from_env(cls) -> "CookieOptions":
        return cls(
            name=get_str_env("SESSION_COOKIE_NAME", "sid") or "sid",
            max_age=get_int_env("SESSION_MAX_AGE", 24 * 60 * 60),
            secure=get_bool_env("SESSION_COOKIE_SECURE", False),
        )


class SessionResponse(BaseModel):
    sid: str
    session: dict[str, Any]


class ReapResponse(BaseModel):
    reaped: int


class DeleteResponse(BaseModel):
    success: bool
