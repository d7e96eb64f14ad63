"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from lyrion_mpris import cli
from lyrion_mpris.lms.types import NetworkError, PlayerInfo


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LYRION_SERVER_ADDRESS", raising=False)
    monkeypatch.delenv("LYRION_PLAYER_ID", raising=False)
    monkeypatch.delenv("LYRION_LOG_LEVEL", raising=False)


@pytest.fixture
def no_config(tmp_path: Path) -> str:
    return str(tmp_path / "absent.yaml")


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    client = MagicMock()
    client.list_players = AsyncMock(
        return_value=[PlayerInfo("aa:bb", "Kitchen"), PlayerInfo("cc:dd", "Den")]
    )
    client.close = AsyncMock()
    monkeypatch.setattr(cli, "LmsClient", MagicMock(return_value=client))
    return client


class TestArgsToDict:
    """Tests for CLI -> config dict conversion."""

    def test_overrides(self) -> None:
        args = cli.parse_args(
            [
                "--server",
                "lms.local",
                "--port",
                "9001",
                "--player",
                "aa:bb",
                "--poll-interval",
                "2",
                "--shuffle-mode",
                "album",
                "--artwork-credentials",
                "--log-level",
                "debug",
            ]
        )
        assert cli.args_to_dict(args) == {
            "server": {"address": "lms.local", "port": 9001},
            "player": {"id": "aa:bb", "poll_interval": 2, "shuffle_mode": "album"},
            "artwork": {"allow_credentials": True},
            "logging": {"level": "debug"},
        }

    def test_no_overrides(self) -> None:
        """Test unset flags don't override file or env values."""
        assert cli.args_to_dict(cli.parse_args([])) == {}


class TestListPlayers:
    """Tests for --list-players."""

    def test_text_output(self, fake_client, no_config, capsys) -> None:
        code = cli.main(["--config", no_config, "--server", "lms.local", "--list-players"])

        assert code == cli.EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Kitchen" in out
        assert "ID: cc:dd" in out
        fake_client.close.assert_awaited_once()

    def test_json_output(self, fake_client, no_config, capsys) -> None:
        code = cli.main(
            ["--config", no_config, "--server", "lms.local", "--list-players", "--json"]
        )

        assert code == cli.EXIT_SUCCESS
        output = json.loads(capsys.readouterr().out)
        assert output == {
            "players": [{"id": "aa:bb", "name": "Kitchen"}, {"id": "cc:dd", "name": "Den"}],
            "count": 2,
        }

    def test_requires_server(self, fake_client, no_config) -> None:
        code = cli.main(["--config", no_config, "--list-players"])
        assert code == cli.EXIT_CONFIG_ERROR
        fake_client.list_players.assert_not_called()

    def test_network_error(self, fake_client, no_config) -> None:
        fake_client.list_players.side_effect = NetworkError("refused")
        code = cli.main(["--config", no_config, "--server", "lms.local", "--list-players"])
        assert code == cli.EXIT_NETWORK_ERROR
        fake_client.close.assert_awaited_once()


class TestMain:
    """Tests for main() error handling."""

    def test_config_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("player:\n  poll_interval: 0\n")
        assert cli.main(["--config", str(path)]) == cli.EXIT_CONFIG_ERROR

    def test_runs_bridge(self, monkeypatch: pytest.MonkeyPatch, no_config) -> None:
        run_bridge = MagicMock(return_value=cli.EXIT_SUCCESS)
        monkeypatch.setattr(cli, "run_bridge", run_bridge)

        assert cli.main(["--config", no_config, "--server", "lms.local"]) == cli.EXIT_SUCCESS

        config, _, cli_config = run_bridge.call_args.args
        assert config.server.address == "lms.local"
        assert cli_config == {"server": {"address": "lms.local"}}
