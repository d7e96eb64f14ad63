"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from lyrion_mpris.config import (
    Config,
    ConfigError,
    ConnectionConfig,
    ShuffleMode,
    dict_to_config,
    load_config,
    load_env_config,
    merge_configs,
    validate_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's LYRION_* variables out of the tests."""
    for name in (
        "LYRION_SERVER_SCHEME",
        "LYRION_SERVER_ADDRESS",
        "LYRION_SERVER_PORT",
        "LYRION_SERVER_USERNAME",
        "LYRION_SERVER_PASSWORD",
        "LYRION_PLAYER_ID",
        "LYRION_POLL_INTERVAL",
        "LYRION_SHUFFLE_MODE",
        "LYRION_ALLOW_ARTWORK_CREDENTIALS",
        "LYRION_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestConnectionConfig:
    """Tests for the immutable connection snapshot."""

    def test_defaults(self) -> None:
        config = ConnectionConfig()
        assert config.port == 9000
        assert config.poll_interval == 5
        assert config.shuffle_mode == ShuffleMode.BY_TRACK
        assert config.allow_artwork_credentials is False
        assert not config.is_usable

    def test_urls(self) -> None:
        config = ConnectionConfig(scheme="https", host="lms", port=9443, username="u", password="p")
        assert config.base_url == "https://lms:9443"
        assert config.control_url == "https://lms:9443/jsonrpc.js"

    def test_usable_needs_host_and_player(self) -> None:
        assert not ConnectionConfig(host="lms").is_usable
        assert not ConnectionConfig(player_id="aa:bb").is_usable
        assert ConnectionConfig(host="lms", player_id="aa:bb").is_usable

    def test_is_frozen(self) -> None:
        config = ConnectionConfig()
        with pytest.raises(AttributeError):
            config.host = "other"  # type: ignore[misc]


class TestConfigConnection:
    """Tests for Config.connection()."""

    def test_builds_snapshot(self) -> None:
        config = dict_to_config(
            {
                "server": {"address": " lms.local ", "port": 9001, "username": "me"},
                "player": {"id": "aa:bb", "poll_interval": 2, "shuffle_mode": "album"},
                "artwork": {"allow_credentials": True},
            }
        )
        connection = config.connection()

        assert connection.host == "lms.local"
        assert connection.port == 9001
        assert connection.player_id == "aa:bb"
        assert connection.poll_interval == 2
        assert connection.shuffle_mode == ShuffleMode.BY_ALBUM
        assert connection.allow_artwork_credentials is True
        assert connection.username == "me"

    def test_numeric_shuffle_mode(self) -> None:
        """Test the LMS numeric shuffle codes are accepted."""
        config = dict_to_config({"player": {"shuffle_mode": 2}})
        assert config.player.shuffle_mode == "album"
        assert config.connection().shuffle_mode == ShuffleMode.BY_ALBUM


class TestValidation:
    """Tests for validate_config."""

    def test_defaults_are_valid(self) -> None:
        """Test a missing address and player id are not errors."""
        validate_config(Config())

    @pytest.mark.parametrize(
        "data",
        [
            {"server": {"scheme": "ftp"}},
            {"server": {"port": 0}},
            {"server": {"port": 70000}},
            {"server": {"username": "a:b"}},
            {"player": {"poll_interval": 0}},
            {"player": {"poll_interval": "fast"}},
            {"player": {"shuffle_mode": "random"}},
            {"logging": {"level": "verbose"}},
        ],
    )
    def test_invalid(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            validate_config(dict_to_config(data))


class TestSources:
    """Tests for config sources and their priority."""

    def test_env_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LYRION_SERVER_ADDRESS", "lms.env")
        monkeypatch.setenv("LYRION_SERVER_PORT", "9002")
        monkeypatch.setenv("LYRION_ALLOW_ARTWORK_CREDENTIALS", "yes")

        assert load_env_config() == {
            "server": {"address": "lms.env", "port": 9002},
            "artwork": {"allow_credentials": True},
        }

    def test_invalid_env_integer_is_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LYRION_POLL_INTERVAL", "soon")
        assert load_env_config() == {}

    def test_merge_is_deep(self) -> None:
        merged = merge_configs(
            {"server": {"address": "a", "port": 1}},
            {"server": {"port": 2}},
        )
        assert merged == {"server": {"address": "a", "port": 2}}

    def test_priority(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test CLI beats env beats file."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "server:\n  address: lms.file\n  port: 9100\nplayer:\n  id: file-player\n"
        )
        monkeypatch.setenv("LYRION_SERVER_PORT", "9200")

        config = load_config(path, {"player": {"id": "cli-player"}})

        assert config.server.address == "lms.file"
        assert config.server.port == 9200
        assert config.player.id == "cli-player"

    def test_missing_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "absent.yaml")
        assert config.server.address == ""

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("server: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)
