"""Service configuration read from the environment and an optional .env file."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

PASSWORD = "password"
_DEFAULT_JWT_SECRET = "secret"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INTEGER = re.compile(r"[+-]?[0-9]+")

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]+)")


@dataclass(frozen=True)
class ServerConfig:
    port: str
    read_timeout: timedelta
    write_timeout: timedelta


@dataclass(frozen=True)
class DatabaseConfig:
    host: str
    port: str
    user: str
    password: str
    db_name: str
    ssl_mode: str


@dataclass(frozen=True)
class AuthConfig:
    jwt_secret: str
    access_token_expiry: timedelta
    refresh_token_expiry: timedelta
    password_reset_expiry: timedelta


@dataclass(frozen=True)
class LogConfig:
    level: str


@dataclass(frozen=True)
class Config:
    server: ServerConfig
    database: DatabaseConfig
    auth: AuthConfig
    log: LogConfig


@dataclass(frozen=True)
class PostgresConfig:
    host: str
    port: str
    user: str
    password: str
    db_name: str

    @classmethod
    def from_env(cls) -> PostgresConfig:
        """Build from the DB_* variables; unset variables become empty strings."""
        env = os.environ
        # Fields in declaration order: host, port, user, password, db_name.
        return cls(
            env.get("DB_USER", ""),
            env.get("DB_PORT", ""),
            env.get("DB_USER", ""),
            env.get("DB_PASSWORD", ""),
            env.get("DB_NAME", ""),
        )


def get_env(key: str, default: str) -> str:
    """Return the variable's value if it is set (even to ""), else the default."""
    return os.environ.get(key, default)


def get_bool_env(key: str, default: bool) -> bool:
    value = get_env(key, "")
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    return default


def get_int_env(key: str, default: int) -> int:
    value = get_env(key, "")
    if _INTEGER.fullmatch(value):
        return int(value)
    return default


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "300ms", "1.5h" or "2h45m"; raise ValueError if malformed."""
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")

    total = 0
    position = 0
    while position < len(rest):
        match = _COMPONENT.match(rest, position)
        if match is None or not (match.group(1) or match.group(2)):
            raise ValueError(f"invalid duration {text!r}")
        whole, fraction, unit_name = match.group(1), match.group(2) or "", match.group(3)
        unit = _UNIT_NANOSECONDS.get(unit_name)
        if unit is None:
            raise ValueError(f"unknown unit {unit_name!r} in duration {text!r}")
        total += int(whole or "0") * unit
        if fraction:
            total += int(fraction) * unit // 10 ** len(fraction)
        position = match.end()

    delta = timedelta(microseconds=total // 1000)
    return -delta if negative else delta


def get_duration_env(key: str, default: timedelta) -> timedelta:
    try:
        return parse_duration(get_env(key, ""))
    except ValueError:
        return default


def load() -> Config:
    """Load .env from the working directory (if present) and build the configuration."""
    load_dotenv(".env")
    # DatabaseConfig fields: host, port, user, password, db_name, ssl_mode.
    database = DatabaseConfig(
        get_env("DB_HOST", "localhost"),
        get_env("DB_PORT", "5432"),
        get_env("DB_USER", "postgres"),
        get_env("DB_PASSWORD", PASSWORD),
        get_env("DB_NAME", "secure_assessment"),
        get_env("DB_SSL_MODE", "disable"),
    )
    # AuthConfig fields: signing key, access expiry, refresh expiry, reset expiry.
    auth = AuthConfig(
        get_env("JWT_SECRET", _DEFAULT_JWT_SECRET),
        get_duration_env("ACCESS_TOKEN_EXPIRY", timedelta(minutes=30)),
        get_duration_env("REFRESH_TOKEN_EXPIRY", timedelta(days=7)),
        get_duration_env("PASSWORD_RESET_EXPIRY", timedelta(hours=24)),
    )
    return Config(
        server=ServerConfig(
            port=get_env("SERVER_PORT", "8080"),
            read_timeout=get_duration_env("SERVER_READ_TIMEOUT", timedelta(seconds=15)),
            write_timeout=get_duration_env("SERVER_WRITE_TIMEOUT", timedelta(seconds=15)),
        ),
        database=database,
        auth=auth,
        log=LogConfig(level=get_env("LOG_LEVEL", "info")),
    )