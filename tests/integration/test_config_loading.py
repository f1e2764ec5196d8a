"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from tubekiosk.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "tubekiosk-test",
        "environment": "test",
        "server": {"host": "127.0.0.1", "port": 8080},
        "storage": {"data_dir": str(tmp_path / "data")},
        "http": {"timeout_seconds": 20.0, "user_agent": "TestAgent/1.0"},
        "youtube": {"credentials_path": str(tmp_path / "creds.json")},
        "player": {"server_url": "http://kiosk.local:8080", "max_item_seconds": 120},
        "logging": {"level": "DEBUG", "format": "console"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "tubekiosk"
        assert config.environment == "dev"
        assert config.port is None
        assert config.data_dir == Path("./data")
        assert config.http_timeout_seconds == 15.0
        assert config.breaker_failure_threshold == 3
        assert config.player.server_url == "http://127.0.0.1:3000"
        assert config.player.preload_lead_seconds == 8.0
        assert config.player.max_item_seconds == 300.0
        assert config.log_level == "INFO"
        assert config.log_format == "console"  # dev -> console

    def test_prod_derives_json_logs(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "tubekiosk-test"
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.data_dir == tmp_path / "data"
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.youtube_credentials_path == tmp_path / "creds.json"
        assert config.player.server_url == "http://kiosk.local:8080"
        assert config.player.max_item_seconds == 120
        assert config.log_level == "DEBUG"

    def test_yaml_partial_player_section_keeps_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.player.retry_seconds == 10.0
        assert config.player.mpv_path == "mpv"

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(config_path=path)


class TestEnvOverrides:
    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TUBEKIOSK_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("TUBEKIOSK_PORT", "9000")
        monkeypatch.setenv("TUBEKIOSK_SERVER_URL", "http://env.local:9000")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.port == 9000
        assert config.player.server_url == "http://env.local:9000"
        assert config.app_name == "tubekiosk-test"

    def test_env_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TUBEKIOSK_YOUTUBE_API_KEY", "secret")

        config = load_config()
        assert config.youtube_api_key == "secret"
        assert config.to_sectioned_dict()["youtube"]["api_key"] == "***"

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Registers the variable so the value loaded from .env is undone.
        monkeypatch.setenv("TUBEKIOSK_MPV_PATH", "unset")
        monkeypatch.delenv("TUBEKIOSK_MPV_PATH")
        dotenv = tmp_path / ".env"
        dotenv.write_text("TUBEKIOSK_MPV_PATH=/opt/mpv/bin/mpv\n", encoding="utf-8")

        config = load_config(dotenv_path=dotenv)
        assert config.player.mpv_path == "/opt/mpv/bin/mpv"


class TestCliOverrides:
    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TUBEKIOSK_LOG_LEVEL", "WARNING")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "data_dir": "/srv/kiosk"},
        )
        assert config.log_level == "ERROR"
        assert config.data_dir == Path("/srv/kiosk")

    def test_cli_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"player": {"retry_seconds": 3}},
        )
        assert config.player.retry_seconds == 3
        assert config.player.server_url == "http://kiosk.local:8080"

    def test_invalid_value_rejected(self) -> None:
        with pytest.raises(ValueError):
            load_config(cli_overrides={"player": {"max_item_seconds": 0}})
