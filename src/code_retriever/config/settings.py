"""Configuration settings: environment (.env included) overridden by CLI flags."""
import argparse
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from code_retriever.core.errors import ConfigError

# .env wins over variables already in the environment
load_dotenv(override=True)

DAY_SECONDS = 24 * 60 * 60


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class Settings:
    # required
    dsn: str = field(default_factory=lambda: os.getenv("DSN", ""))
    api_key: str = field(default_factory=lambda: os.getenv("APIKEY", ""))
    rpc_url: str = field(default_factory=lambda: os.getenv("RPCURL", ""))

    etherscan_url: str = field(
        default_factory=lambda: os.getenv("ETHERSCAN_URL", "https://api.etherscan.io/api")
    )
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 8080))

    cache_ttl_days: float = field(default_factory=lambda: _env_float("CACHE_TTL_DAYS", 7))
    freshness_days: float = field(default_factory=lambda: _env_float("FRESHNESS_DAYS", 30))
    sweep_interval_seconds: float = field(
        default_factory=lambda: _env_float("SWEEP_INTERVAL_SECONDS", 2 * DAY_SECONDS)
    )
    clock_interval_seconds: float = 1.0

    rate_limit_per_second: float = field(
        default_factory=lambda: _env_float("RATE_LIMIT_PER_SECOND", 5)
    )
    rate_limit_burst: int = field(default_factory=lambda: _env_int("RATE_LIMIT_BURST", 5))
    request_timeout: float = field(default_factory=lambda: _env_float("REQUEST_TIMEOUT", 10))

    def validate(self) -> "Settings":
        if not self.dsn:
            raise ConfigError("Database connection string is required (--dsn or DSN)")
        if not self.api_key:
            raise ConfigError("Etherscan API Key is required (--apikey or APIKEY)")
        if not self.rpc_url:
            raise ConfigError("Ethereum RPC URL is required (--rpc or RPCURL)")
        for name in (
            "cache_ttl_days",
            "freshness_days",
            "sweep_interval_seconds",
            "rate_limit_per_second",
            "request_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.rate_limit_burst < 1:
            raise ConfigError(f"rate_limit_burst must be at least 1, got {self.rate_limit_burst}")
        return self


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="code_retriever",
        description="Caching proxy for verified contract source code",
    )
    parser.add_argument("--dsn", help="DuckDB database path, e.g. data/code.duckdb")
    parser.add_argument("--apikey", help="Etherscan API Key")
    parser.add_argument("--rpc", help="Ethereum RPC URL")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Bind port")
    return parser


def load_settings(argv: Optional[List[str]] = None) -> Settings:
    """Read the environment, apply CLI flags on top and validate."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    if args.dsn:
        settings.dsn = args.dsn
    if args.apikey:
        settings.api_key = args.apikey
    if args.rpc:
        settings.rpc_url = args.rpc
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    return settings.validate()
