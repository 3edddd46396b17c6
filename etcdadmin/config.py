"""
Startup configuration.

Every setting resolves as: command-line flag, then environment variable, then
default. The environment is consulted only when the flag was not given. The
result is one immutable AdminConfig passed to the adapter and the app.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

DEFAULT_LISTEN_PORT = 8080
DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_ETCD_ENDPOINTS = "localhost:2379"
DEFAULT_CA_CERT = "./cacert.pem"
DEFAULT_CERT = "./cert.pem"
DEFAULT_KEY = "./key.pem"
DEFAULT_DIAL_TIMEOUT = 5.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AdminConfig:
    listen_port: int = DEFAULT_LISTEN_PORT
    listen_host: str = DEFAULT_LISTEN_HOST
    endpoints: tuple[str, ...] = (DEFAULT_ETCD_ENDPOINTS,)
    ca_cert: str = DEFAULT_CA_CERT
    cert: str = DEFAULT_CERT
    key: str = DEFAULT_KEY
    debug: bool = False
    dial_timeout: float = DEFAULT_DIAL_TIMEOUT
    request_timeout: Optional[float] = None
    revision_source: int = 0
    log_file: Optional[str] = None


def parse_endpoints(raw: str) -> tuple[str, ...]:
    return tuple(ep.strip() for ep in str(raw).split(",") if ep.strip())


def parse_port(raw) -> int:
    # Accept ":8080" as well as "8080"
    text = str(raw).strip()
    if text.startswith(":"):
        text = text[1:]
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"listen port must be an integer, got {raw!r}")


def parse_bool(raw) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUTHY


def _optional_float(raw) -> Optional[float]:
    if raw is None or str(raw).strip() == "":
        return None
    return float(raw)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Administrative HTTP facade for an etcd v3 cluster"
    )
    # Flag defaults stay None so an unset flag falls through to the environment
    parser.add_argument("--listen-port", help=f"Listening port (env LISTEN_PORT, default: {DEFAULT_LISTEN_PORT})")
    parser.add_argument("--listen-host", help=f"Bind address (env LISTEN_HOST, default: {DEFAULT_LISTEN_HOST})")
    parser.add_argument(
        "--etcd-endpoints",
        help=f"Comma-separated etcd endpoints (env ETCD_ENDPOINTS, default: {DEFAULT_ETCD_ENDPOINTS})",
    )
    parser.add_argument("--cacert", help=f"Etcd CA certificate (env CA_CERT, default: {DEFAULT_CA_CERT})")
    parser.add_argument("--cert", help=f"Client certificate (env CERT, default: {DEFAULT_CERT})")
    parser.add_argument("--key", help=f"Client private key (env KEY, default: {DEFAULT_KEY})")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug mode (env DEBUG)")
    parser.add_argument(
        "--dial-timeout",
        type=float,
        help=f"Seconds to wait for the first endpoint at startup (env DIAL_TIMEOUT, default: {DEFAULT_DIAL_TIMEOUT})",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        help="Per-call timeout in seconds for cluster operations (env REQUEST_TIMEOUT, default: none)",
    )
    parser.add_argument(
        "--revision-source",
        type=int,
        help="Index of the endpoint whose revision drives compaction (env REVISION_SOURCE, default: 0)",
    )
    parser.add_argument("--log-file", help="Optional log file (env LOG_FILE)")
    return parser


def _resolve(flag_value, env: Mapping[str, str], env_name: str, default):
    if flag_value is not None:
        return flag_value
    raw = env.get(env_name)
    if raw is not None and str(raw).strip() != "":
        return raw
    return default


def load_config(
    argv: Optional[Sequence[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AdminConfig:
    """
    Build the configuration from flags and environment.

    Raises:
        ValueError: a value failed to parse or validate
        SystemExit: argparse rejected the command line
    """
    if env is None:
        env = os.environ
    args = build_parser().parse_args(argv)

    revision_source = _resolve(args.revision_source, env, "REVISION_SOURCE", 0)
    config = AdminConfig(
        listen_port=parse_port(_resolve(args.listen_port, env, "LISTEN_PORT", DEFAULT_LISTEN_PORT)),
        listen_host=str(_resolve(args.listen_host, env, "LISTEN_HOST", DEFAULT_LISTEN_HOST)).strip(),
        endpoints=parse_endpoints(_resolve(args.etcd_endpoints, env, "ETCD_ENDPOINTS", DEFAULT_ETCD_ENDPOINTS)),
        ca_cert=str(_resolve(args.cacert, env, "CA_CERT", DEFAULT_CA_CERT)),
        cert=str(_resolve(args.cert, env, "CERT", DEFAULT_CERT)),
        key=str(_resolve(args.key, env, "KEY", DEFAULT_KEY)),
        debug=parse_bool(_resolve(args.debug, env, "DEBUG", False)),
        dial_timeout=float(_resolve(args.dial_timeout, env, "DIAL_TIMEOUT", DEFAULT_DIAL_TIMEOUT)),
        request_timeout=_optional_float(_resolve(args.request_timeout, env, "REQUEST_TIMEOUT", None)),
        revision_source=int(revision_source),
        log_file=_resolve(args.log_file, env, "LOG_FILE", None),
    )
    validate_config(config)
    return config


def validate_config(config: AdminConfig) -> None:
    if config.listen_port < 1 or config.listen_port > 65535:
        raise ValueError("listen port must be in range 1..65535")
    if not config.listen_host:
        raise ValueError("listen host is required")
    if not config.endpoints:
        raise ValueError("at least one etcd endpoint is required")
    if config.dial_timeout <= 0:
        raise ValueError("dial timeout must be positive")
    if config.request_timeout is not None and config.request_timeout <= 0:
        raise ValueError("request timeout must be positive when set")
    if not 0 <= config.revision_source < len(config.endpoints):
        raise ValueError(
            f"revision source {config.revision_source} out of range for {len(config.endpoints)} endpoints"
        )
