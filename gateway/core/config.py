"""
Gateway configuration resolved from environment variables.

Every setting is described once in ``FIELD_RULES`` as an
(attribute, env key, parser, default) rule, and ``read_config`` folds the
environment through that table to build an immutable ``GatewayConfig``.
Resolution happens once at process start; the resulting record is shared
read-only by request handlers.

Two failure policies apply and are intentionally different:
  - a malformed provider URL is fatal (``InvalidURLError``);
  - a malformed optional integer only logs a warning and keeps the default.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional
from urllib.parse import SplitResult, urlsplit

from gateway.core.durations import DurationParseError, parse_duration
from gateway.core.env import HasEnv, OsEnv


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = dt.timedelta(seconds=8)

_PLAIN_INT = re.compile(r"[-+]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1
# Largest whole-second timeout that fits a signed 64-bit nanosecond count.
_MAX_TIMEOUT_SECONDS = _INT64_MAX // 10**9
_WHITESPACE = re.compile(r"\s")


class ConfigError(Exception):
    """Base class for configuration problems."""


class InvalidURLError(ConfigError):
    """A provider URL was set but could not be parsed."""

    def __init__(self, key: str, value: str, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"If {key} is provided, then it should be a valid URL. {reason}: {value!r}")


@dataclass(frozen=True)
class GatewayConfig:
    """Configuration for the API gateway process."""

    # HTTP timeout for reading a request from clients.
    read_timeout: dt.timedelta = DEFAULT_TIMEOUT
    # HTTP timeout for writing a response from functions.
    write_timeout: dt.timedelta = DEFAULT_TIMEOUT
    # Maximum duration of an HTTP call to the upstream URL.
    upstream_timeout: dt.timedelta = DEFAULT_TIMEOUT

    functions_provider_url: Optional[SplitResult] = None
    logs_provider_url: Optional[SplitResult] = None

    # Both are required for async (NATS) invocation.
    nats_address: Optional[str] = None
    nats_port: Optional[int] = None

    prometheus_host: str = "prometheus"
    prometheus_port: int = 9090

    # Call functions directly instead of going through the provider.
    direct_functions: bool = False
    direct_functions_suffix: str = ""

    # Read basic auth credentials from secret_mount_path.
    use_basic_auth: bool = False
    secret_mount_path: str = "/run/secrets/"

    # Start functions that have zero replicas on first invocation.
    scale_from_zero: bool = False

    # HTTP proxy connection pool tuning.
    max_idle_conns: int = 1024
    max_idle_conns_per_host: int = 1024

    # Authenticating proxy, disabled when blank, e.g. http://basic-auth.openfaas:8080/validate
    auth_proxy_url: str = ""
    auth_proxy_pass_body: bool = False

    def uses_messaging(self) -> bool:
        """True when both the NATS address and port are configured."""
        return self.nats_address is not None and self.nats_port is not None

    def uses_external_provider(self) -> bool:
        """True when requests are delegated to an external functions provider."""
        return self.functions_provider_url is not None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view: durations in seconds, URLs as strings."""
        view: dict[str, Any] = {}
        for name, value in asdict(self).items():
            if isinstance(value, dt.timedelta):
                value = value.total_seconds()
            elif isinstance(value, SplitResult):
                value = value.geturl()
            view[name] = value
        return view


def parse_bool_value(val: str) -> bool:
    """Only the exact string ``"true"`` enables a flag."""
    return val == "true"


def parse_int_or_duration_value(val: str, fallback: dt.timedelta) -> dt.timedelta:
    """Parse a timeout given either as whole seconds or as a duration expression.

    A bare non-negative integer always means seconds (``"10"`` is ten
    seconds). Otherwise the value is read as a duration expression such as
    ``"500ms"``. Empty, unparseable, negative and out-of-range values
    yield ``fallback``.
    """
    if val and _PLAIN_INT.fullmatch(val):
        seconds = int(val)
        if 0 <= seconds <= _MAX_TIMEOUT_SECONDS:
            return dt.timedelta(seconds=seconds)

    try:
        duration = parse_duration(val)
    except DurationParseError:
        return fallback
    if duration < dt.timedelta(0):
        return fallback
    return duration


def parse_url(key: str, val: str) -> SplitResult:
    """Parse an absolute URL or raise ``InvalidURLError`` naming ``key``."""
    if _WHITESPACE.search(val):
        raise InvalidURLError(key, val, "contains whitespace")
    try:
        parsed = urlsplit(val)
        # Accessing .port validates it is numeric and in range.
        parsed.port
    except ValueError as exc:
        raise InvalidURLError(key, val, str(exc)) from exc
    if not parsed.scheme or not parsed.hostname:
        raise InvalidURLError(key, val, "missing scheme or host")
    return parsed


def _timeout(key: str, raw: str, default: Any) -> dt.timedelta:
    return parse_int_or_duration_value(raw, default)


def _url(key: str, raw: str, default: Any) -> Optional[SplitResult]:
    if not raw:
        return default
    return parse_url(key, raw)


def _non_empty(key: str, raw: str, default: Any) -> Any:
    return raw if raw else default


def _verbatim(key: str, raw: str, default: Any) -> str:
    return raw


def _flag(key: str, raw: str, default: Any) -> bool:
    return parse_bool_value(raw)


def _optional_int(key: str, raw: str, default: Any) -> Optional[int]:
    if not raw:
        return default
    if not _PLAIN_INT.fullmatch(raw) or not _INT64_MIN <= int(raw) <= _INT64_MAX:
        logger.warning("Invalid integer for %s: %r, keeping %r", key, raw, default)
        return default
    return int(raw)


@dataclass(frozen=True)
class FieldRule:
    """How one ``GatewayConfig`` attribute is read from the environment."""

    attribute: str
    env_key: str
    parse: Callable[[str, str, Any], Any]
    default: Any = None


# Order matters: functions_provider_url resolves before logs_provider_url.
FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("read_timeout", "read_timeout", _timeout, DEFAULT_TIMEOUT),
    FieldRule("write_timeout", "write_timeout", _timeout, DEFAULT_TIMEOUT),
    FieldRule("upstream_timeout", "upstream_timeout", _timeout, DEFAULT_TIMEOUT),
    FieldRule("functions_provider_url", "functions_provider_url", _url),
    FieldRule("logs_provider_url", "logs_provider_url", _url),
    FieldRule("nats_address", "faas_nats_address", _non_empty),
    FieldRule("nats_port", "faas_nats_port", _optional_int),
    FieldRule("prometheus_port", "faas_prometheus_port", _optional_int, 9090),
    FieldRule("prometheus_host", "faas_prometheus_host", _non_empty, "prometheus"),
    FieldRule("direct_functions", "direct_functions", _flag, False),
    FieldRule("direct_functions_suffix", "direct_functions_suffix", _verbatim, ""),
    FieldRule("use_basic_auth", "basic_auth", _flag, False),
    FieldRule("secret_mount_path", "secret_mount_path", _non_empty, "/run/secrets/"),
    FieldRule("scale_from_zero", "scale_from_zero", _flag, False),
    FieldRule("max_idle_conns", "max_idle_conns", _optional_int, 1024),
    FieldRule("max_idle_conns_per_host", "max_idle_conns_per_host", _optional_int, 1024),
    FieldRule("auth_proxy_url", "auth_proxy_url", _verbatim, ""),
    FieldRule("auth_proxy_pass_body", "auth_proxy_pass_body", _flag, False),
)


def read_config(env: HasEnv) -> GatewayConfig:
    """Resolve ``GatewayConfig`` from ``env``.

    Parameters
    ----------
    env : HasEnv
        Source of raw string values, usually ``OsEnv()``.

    Returns
    -------
    GatewayConfig
        Frozen record; resolving the same environment twice gives equal records.

    Raises
    ------
    InvalidURLError
        If ``functions_provider_url`` or ``logs_provider_url`` is set but malformed.
    """
    values: dict[str, Any] = {}
    for rule in FIELD_RULES:
        values[rule.attribute] = rule.parse(rule.env_key, env.getenv(rule.env_key), rule.default)

    functions_url = values["functions_provider_url"]
    if values["logs_provider_url"] is None and functions_url is not None:
        values["logs_provider_url"] = parse_url("logs_provider_url", functions_url.geturl())

    return GatewayConfig(**values)


def load_gateway_config(env: Optional[HasEnv] = None) -> GatewayConfig:
    """Resolve configuration for the running process, exiting on fatal errors.

    Raises
    ------
    SystemExit
        With status 1 when a provider URL is malformed.
    """
    try:
        config = read_config(env if env is not None else OsEnv())
    except ConfigError as exc:
        logger.critical(str(exc))
        raise SystemExit(1) from exc

    logger.info(
        "Gateway configuration resolved: %s",
        config.as_dict(),
        extra={
            "external_provider": config.uses_external_provider(),
            "messaging": config.uses_messaging(),
        },
    )
    return config
