"""
Client configuration.

All settings are resolved once at startup into an immutable :class:`ClientConfig`
from three layers read by pydantic-settings: a ``.env`` file, the process
environment and explicit overrides (overrides win, then the environment, then
the file).
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ws402.errors import ConfigError
from ws402.models.options import EventFormat, OutputOptions, Watchlist

__all__ = [
    "ClientConfig",
    "EnvSettings",
    "build_environment",
    "load_config",
    "parse_bool",
    "parse_event_format",
    "parse_list",
    "parse_renew_method",
    "parse_tx_log_mode",
]

DEFAULT_BASE_URL = "https://x402.atomicstream.net"
DEFAULT_SCHEMA_PATH = "/v1/schema/stream/mempool-sniff"
DEFAULT_RENEW_BACKOFF_SECONDS = 1.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

RenewMethod = Literal["http", "inband"]
TxLogMode = Literal["summary", "full"]

_LOG_LEVELS = {"debug", "info", "warn", "warning", "error"}


def parse_list(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    items: list[str] = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return tuple(items)


def parse_bool(value: Optional[str], fallback: bool) -> bool:
    if value is None:
        return fallback
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return fallback


def parse_event_format(value: Optional[str]) -> Optional[EventFormat]:
    if not value:
        return None
    normalized = value.strip().lower()
    if normalized in ("raw", "enhanced"):
        return normalized  # type: ignore[return-value]
    return None


def parse_tx_log_mode(value: Optional[str]) -> TxLogMode:
    if value and value.strip().lower() == "summary":
        return "summary"
    return "full"


def parse_renew_method(value: Optional[str]) -> RenewMethod:
    return "inband" if value and value.strip().lower() == "inband" else "http"


def _parse_log_level(value: Optional[str]) -> str:
    level = (value or "info").strip().lower()
    if level not in _LOG_LEVELS:
        return "info"
    return "warning" if level == "warn" else level


def _parse_seconds(values: Mapping[str, str], key: str, default: float) -> float:
    raw = values.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        seconds = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number of seconds, got '{raw}'") from exc
    if seconds < 0:
        raise ConfigError(f"{key} must not be negative")
    return seconds


class EnvSettings(BaseSettings):
    """Raw setting strings, read from the process environment and a ``.env`` file."""

    public_http_base_url: Optional[str] = None
    x402_schema_path: Optional[str] = None
    payer_private_key: Optional[str] = Field(default=None, repr=False)
    renew_method: Optional[str] = None
    watch_accounts: Optional[str] = None
    watch_programs: Optional[str] = None
    include_accounts: Optional[str] = None
    include_token_balance_changes: Optional[str] = None
    include_logs: Optional[str] = None
    include_instructions: Optional[str] = None
    filter_token_balances: Optional[str] = None
    event_format: Optional[str] = None
    log_transactions: Optional[str] = None
    log_level: Optional[str] = None
    renew_backoff_seconds: Optional[str] = None
    http_timeout_seconds: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


ENV_KEYS = frozenset(name.upper() for name in EnvSettings.model_fields)


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Merge the configuration layers into one mapping keyed by setting name.

    Set ``env_file`` to ``None`` to skip file loading. Raises ConfigError for
    an override that names no known setting.
    """
    init: Dict[str, str] = {}
    for key, value in (overrides or {}).items():
        if key.upper() not in ENV_KEYS:
            raise ConfigError(f"Unknown setting '{key}'")
        init[key.lower()] = value

    settings = EnvSettings(_env_file=env_file, **init)
    return {
        name.upper(): value
        for name, value in settings.model_dump().items()
        if value is not None
    }


class ClientConfig(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    schema_path: str = DEFAULT_SCHEMA_PATH
    private_key: str = Field(repr=False)
    renew_method: RenewMethod = "http"
    watchlist: Watchlist = Watchlist()
    options: OutputOptions = OutputOptions()
    tx_log_mode: TxLogMode = "full"
    log_level: str = "info"
    renew_backoff_seconds: float = DEFAULT_RENEW_BACKOFF_SECONDS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    model_config = {"frozen": True}

    def redacted(self) -> dict[str, Any]:
        """Settings safe to print: the private key is masked."""
        data = self.model_dump()
        key = data.pop("private_key", "")
        data["private_key"] = f"{key[:4]}…{key[-4:]}" if len(key) > 12 else "***"
        return data

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ClientConfig":
        private_key = (values.get("PAYER_PRIVATE_KEY") or "").strip()
        if not private_key:
            raise ConfigError("Missing PAYER_PRIVATE_KEY environment variable")

        base_url = (values.get("PUBLIC_HTTP_BASE_URL") or DEFAULT_BASE_URL).strip().rstrip("/")
        if not base_url.startswith(("http://", "https://")):
            raise ConfigError(f"PUBLIC_HTTP_BASE_URL must be an http(s) URL, got '{base_url}'")

        defaults = OutputOptions()
        options = OutputOptions(
            event_format=parse_event_format(values.get("EVENT_FORMAT")) or defaults.event_format,
            include_accounts=parse_bool(values.get("INCLUDE_ACCOUNTS"), defaults.include_accounts),
            include_token_balance_changes=parse_bool(
                values.get("INCLUDE_TOKEN_BALANCE_CHANGES"), defaults.include_token_balance_changes,
            ),
            include_logs=parse_bool(values.get("INCLUDE_LOGS"), defaults.include_logs),
            include_instructions=parse_bool(values.get("INCLUDE_INSTRUCTIONS"), defaults.include_instructions),
            filter_token_balances=parse_bool(values.get("FILTER_TOKEN_BALANCES"), defaults.filter_token_balances),
        )

        return cls(
            base_url=base_url,
            schema_path=(values.get("X402_SCHEMA_PATH") or DEFAULT_SCHEMA_PATH).strip(),
            private_key=private_key,
            renew_method=parse_renew_method(values.get("RENEW_METHOD")),
            watchlist=Watchlist(
                accounts=parse_list(values.get("WATCH_ACCOUNTS")),
                programs=parse_list(values.get("WATCH_PROGRAMS")),
            ),
            options=options,
            tx_log_mode=parse_tx_log_mode(values.get("LOG_TRANSACTIONS")),
            log_level=_parse_log_level(values.get("LOG_LEVEL")),
            renew_backoff_seconds=_parse_seconds(
                values, "RENEW_BACKOFF_SECONDS", DEFAULT_RENEW_BACKOFF_SECONDS,
            ),
            http_timeout_seconds=_parse_seconds(
                values, "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS,
            ),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        return cls.from_mapping(build_environment(env_file=env_file, overrides=overrides))


def load_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Convenience wrapper that mirrors :meth:`ClientConfig.from_env`."""
    return ClientConfig.from_env(env_file=env_file, overrides=overrides)
