"""Configuration management for the pairing service."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from wapair.errors import ConfigError


@dataclass
class PairingConfig:
    """Pairing code configuration."""

    code_ttl_minutes: float = 10.0
    default_calling_code: str = "254"  # Applied to local numbers starting with 0
    default_country: str = "KE"

    @property
    def code_ttl_seconds(self) -> float:
        return self.code_ttl_minutes * 60.0


@dataclass
class ConnectionConfig:
    """WhatsApp connection and reconnect policy configuration."""

    max_qr_attempts: int = 5
    short_reconnect_delay: float = 5.0  # seconds, after a transient close
    long_reconnect_delay: float = 10.0  # seconds, after logout
    init_failure_delay: float = 10.0  # seconds, after connect() raised
    connect_timeout: float = 30.0
    client_name: str = "wapair"
    version: list[int] | None = None  # Protocol version; None lets the provider decide
    shutdown_timeout: float = 5.0


@dataclass
class Config:
    """Service configuration."""

    port: int = 3000
    bind_address: str = "0.0.0.0"
    log_level: str = "INFO"
    log_file: str | None = None
    service_name: str = "WhatsApp Pairing Service"
    auth_dir: str = "~/.local/share/wapair/auth_info"
    startup_delay: float = 2.0  # seconds between server start and first connect
    pairing: PairingConfig = field(default_factory=PairingConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "wapair" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def _parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid port: {value!r}") from e
    if not 0 <= port <= 65535:
        raise ConfigError(f"Port out of range: {port}")
    return port


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from file, then apply environment overrides.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.
        environ: Environment mapping (defaults to os.environ). Only PORT is read.

    Returns:
        Config object with values from file or defaults.

    Raises:
        ConfigError: If the file is malformed or a value is invalid.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader
    env = os.environ if environ is None else environ

    data = reader(config_path) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

    pairing_data = data.get("pairing", {}) or {}
    pairing_config = PairingConfig(
        code_ttl_minutes=float(
            pairing_data.get("code_ttl_minutes", PairingConfig.code_ttl_minutes)
        ),
        default_calling_code=str(
            pairing_data.get("default_calling_code", PairingConfig.default_calling_code)
        ),
        default_country=pairing_data.get("default_country", PairingConfig.default_country),
    )
    if pairing_config.code_ttl_minutes <= 0:
        raise ConfigError("pairing.code_ttl_minutes must be positive")

    connection_data = data.get("connection", {}) or {}
    defaults = ConnectionConfig()
    connection_config = ConnectionConfig(
        max_qr_attempts=int(connection_data.get("max_qr_attempts", defaults.max_qr_attempts)),
        short_reconnect_delay=float(
            connection_data.get("short_reconnect_delay", defaults.short_reconnect_delay)
        ),
        long_reconnect_delay=float(
            connection_data.get("long_reconnect_delay", defaults.long_reconnect_delay)
        ),
        init_failure_delay=float(
            connection_data.get("init_failure_delay", defaults.init_failure_delay)
        ),
        connect_timeout=float(connection_data.get("connect_timeout", defaults.connect_timeout)),
        client_name=connection_data.get("client_name", defaults.client_name),
        version=connection_data.get("version", defaults.version),
        shutdown_timeout=float(
            connection_data.get("shutdown_timeout", defaults.shutdown_timeout)
        ),
    )

    port = _parse_port(data.get("port", Config.port))
    if env.get("PORT"):
        port = _parse_port(env["PORT"])

    return Config(
        port=port,
        bind_address=data.get("bind_address", Config.bind_address),
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        service_name=data.get("service_name", Config.service_name),
        auth_dir=data.get("auth_dir", Config.auth_dir),
        startup_delay=float(data.get("startup_delay", Config.startup_delay)),
        pairing=pairing_config,
        connection=connection_config,
    )
