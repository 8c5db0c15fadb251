"""Tests for config module."""

from pathlib import Path
from unittest.mock import Mock

import pytest
import yaml

from wapair.config import (
    Config,
    ConnectionConfig,
    PairingConfig,
    get_config_path,
    load_config,
)
from wapair.errors import ConfigError


class TestConfigDefaults:
    """Test default configuration values."""

    def test_default_config_values(self):
        """Config has sensible defaults when no file exists."""
        config = Config()

        assert config.port == 3000
        assert config.bind_address == "0.0.0.0"
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert config.startup_delay == 2.0

    def test_default_pairing_values(self):
        pairing = PairingConfig()
        assert pairing.code_ttl_minutes == 10.0
        assert pairing.code_ttl_seconds == 600.0
        assert pairing.default_calling_code == "254"

    def test_default_connection_values(self):
        connection = ConnectionConfig()
        assert connection.max_qr_attempts == 5
        assert connection.short_reconnect_delay == 5.0
        assert connection.long_reconnect_delay == 10.0
        assert connection.init_failure_delay == 10.0


class TestGetConfigPath:
    """Test config path resolution."""

    def test_get_config_path_default(self):
        """Default config path is ~/.config/wapair/config.yaml."""
        assert get_config_path() == Path.home() / ".config" / "wapair" / "config.yaml"

    def test_get_config_path_custom(self):
        custom = Path("/custom/config.yaml")
        assert get_config_path(custom) == custom


class TestLoadConfig:
    """Test config loading."""

    def test_missing_file_uses_defaults(self):
        """No file means defaults."""
        config = load_config(
            Path("/nonexistent.yaml"), file_reader=lambda p: None, environ={}
        )
        assert config == Config()

    def test_reader_receives_path(self):
        reader = Mock(return_value={})
        path = Path("/etc/wapair.yaml")

        load_config(path, file_reader=reader, environ={})

        reader.assert_called_once_with(path)

    def test_values_from_file(self):
        data = {
            "port": 8080,
            "bind_address": "127.0.0.1",
            "log_level": "DEBUG",
            "service_name": "Pairing",
            "auth_dir": "/var/lib/wapair",
            "startup_delay": 0,
            "pairing": {"code_ttl_minutes": 5, "default_calling_code": 234},
            "connection": {
                "max_qr_attempts": 3,
                "short_reconnect_delay": 1,
                "version": [2, 3000, 1015901307],
            },
        }
        config = load_config(Path("x.yaml"), file_reader=lambda p: data, environ={})

        assert config.port == 8080
        assert config.bind_address == "127.0.0.1"
        assert config.log_level == "DEBUG"
        assert config.service_name == "Pairing"
        assert config.auth_dir == "/var/lib/wapair"
        assert config.startup_delay == 0.0
        assert config.pairing.code_ttl_seconds == 300.0
        assert config.pairing.default_calling_code == "234"
        assert config.connection.max_qr_attempts == 3
        assert config.connection.short_reconnect_delay == 1.0
        assert config.connection.long_reconnect_delay == 10.0
        assert config.connection.version == [2, 3000, 1015901307]

    def test_port_env_override(self):
        """PORT from the environment wins over the file."""
        config = load_config(
            Path("x.yaml"), file_reader=lambda p: {"port": 8080}, environ={"PORT": "9090"}
        )
        assert config.port == 9090

    def test_invalid_port(self):
        with pytest.raises(ConfigError, match="Invalid port"):
            load_config(Path("x.yaml"), file_reader=lambda p: {}, environ={"PORT": "http"})

    def test_port_out_of_range(self):
        with pytest.raises(ConfigError, match="out of range"):
            load_config(Path("x.yaml"), file_reader=lambda p: {"port": 70000}, environ={})

    def test_non_positive_ttl(self):
        with pytest.raises(ConfigError, match="code_ttl_minutes"):
            load_config(
                Path("x.yaml"),
                file_reader=lambda p: {"pairing": {"code_ttl_minutes": 0}},
                environ={},
            )

    def test_root_must_be_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            load_config(Path("x.yaml"), file_reader=lambda p: ["port"], environ={})


class TestDefaultFileReader:
    """Test reading YAML from disk."""

    def test_reads_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"port": 4000, "pairing": {"default_country": "NG"}}))

        config = load_config(path, environ={})

        assert config.port == 4000
        assert config.pairing.default_country == "NG"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("  \n")

        assert load_config(path, environ={}) == Config()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("port: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path, environ={})
