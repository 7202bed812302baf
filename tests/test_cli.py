"""Tests for the command line entry points."""

import json
from unittest.mock import patch

import pytest

import cli
from common import ControlResult, DoorCommand, OperationOutcome
from controller import cli as door_cli
from isapi.errors import CriticalError


def _result(success: bool) -> ControlResult:
    outcomes = [
        OperationOutcome("configure", success, error="" if success else "HTTP 500"),
        OperationOutcome("control", True),
    ]
    messages = ["relay configured" if success else "relay configuration failed", "door status set"]
    return ControlResult.from_outcomes(outcomes, messages)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point config discovery at an empty directory and clear credentials."""
    monkeypatch.setenv("DOORCTL_ETC", str(tmp_path / "config"))
    monkeypatch.delenv("DOORCTL_LOGIN", raising=False)
    monkeypatch.delenv("DOORCTL_PASSWORD", raising=False)


class TestMainDispatch:
    """Tests for the top-level noun dispatcher."""

    def test_no_args_prints_usage(self, capsys):
        """No arguments prints usage and exits 1."""
        assert cli.main([]) == 1
        assert "Commands:" in capsys.readouterr().out

    def test_help(self, capsys):
        """--help exits 0."""
        assert cli.main(["--help"]) == 0

    def test_unknown_noun(self, capsys):
        """Unknown noun exits 1."""
        assert cli.main(["frobnicate"]) == 1
        assert "Unknown command" in capsys.readouterr().out

    def test_door_dispatch(self):
        """'door' goes to controller.cli.main."""
        with patch("controller.cli.main", return_value=0) as mock_main:
            assert cli.main(["door", "--ip", "x"]) == 0
        mock_main.assert_called_once_with(["--ip", "x"])


class TestDevicesCommand:
    """Tests for 'devices'."""

    def test_lists_devices(self, config_dir, capsys):
        """Prints one line per device."""
        assert cli.main(["devices", "-c", str(config_dir)]) == 0
        out = capsys.readouterr().out
        assert "192.168.10.48" in out
        assert "RESUME" in out

    def test_json_filtered_by_login(self, config_dir, capsys):
        """--login filters by access, --json prints without passwords."""
        assert cli.main(["devices", "-c", str(config_dir), "--login", "block_a", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert [d["ip"] for d in data] == ["192.168.10.48"]
        assert "password" not in data[0]

    def test_broken_registry(self, tmp_path, capsys):
        """Registry errors exit 1."""
        (tmp_path / "devices.json").write_text("{bad")
        assert cli.main(["devices", "-c", str(tmp_path)]) == 1


class TestDoorCommand:
    """Tests for 'door'."""

    ARGS = ["--ip", "192.168.1.100", "--login", "admin", "--password", "pw"]

    @pytest.mark.parametrize("missing", ["--ip", "--login", "--password"])
    def test_missing_required_flag(self, missing, capsys):
        """Any missing required value exits 1 before contacting a device."""
        args = list(self.ARGS) + ["--state", "1"]
        i = args.index(missing)
        del args[i:i + 2]
        with patch("controller.cli.DoorStateController") as mock_controller:
            assert door_cli.main(args) == 1
        mock_controller.assert_not_called()
        assert f"Missing {missing}" in capsys.readouterr().err

    def test_missing_state(self, capsys):
        """--state is required."""
        assert door_cli.main(self.ARGS) == 1
        assert "Missing --state" in capsys.readouterr().err

    @pytest.mark.parametrize("state", ["0", "4", "open"])
    def test_invalid_state(self, state, capsys):
        """State outside 1..3 exits 1."""
        assert door_cli.main(self.ARGS + ["--state", state]) == 1
        assert "Invalid --state" in capsys.readouterr().err

    def test_invalid_door(self):
        """--door below 1 is rejected by argparse."""
        with pytest.raises(SystemExit) as exc_info:
            door_cli.main(self.ARGS + ["--state", "1", "--door", "0"])
        assert exc_info.value.code != 0

    def test_success_exits_zero(self, capsys):
        """Both steps succeeding exits 0."""
        with patch("controller.cli.DoorStateController") as mock_controller:
            mock_controller.return_value.set_door_state.return_value = _result(True)
            assert door_cli.main(self.ARGS + ["--state", "3", "--door", "2"]) == 0

        target, command = mock_controller.return_value.set_door_state.call_args[0]
        assert target.host == "192.168.1.100"
        assert target.door_no == 2
        assert command == DoorCommand.RESUME
        assert "completed successfully" in capsys.readouterr().out

    def test_failure_exits_one(self, capsys):
        """Any failed step exits 1."""
        with patch("controller.cli.DoorStateController") as mock_controller:
            mock_controller.return_value.set_door_state.return_value = _result(False)
            assert door_cli.main(self.ARGS + ["--state", "1"]) == 1
        assert "1 error(s)" in capsys.readouterr().out

    def test_critical_error_exits_one(self, capsys):
        """CriticalError exits 1."""
        with patch("controller.cli.DoorStateController") as mock_controller:
            mock_controller.return_value.set_door_state.side_effect = CriticalError("boom")
            assert door_cli.main(self.ARGS + ["--state", "1"]) == 1
        assert "Fatal error: boom" in capsys.readouterr().err

    def test_credentials_from_env(self, monkeypatch):
        """Login and password fall back to environment variables."""
        monkeypatch.setenv("DOORCTL_LOGIN", "envuser")
        monkeypatch.setenv("DOORCTL_PASSWORD", "envpw")
        with patch("controller.cli.DoorStateController") as mock_controller:
            mock_controller.return_value.set_door_state.return_value = _result(True)
            assert door_cli.main(["--ip", "10.0.0.1", "--state", "2"]) == 0

        target = mock_controller.return_value.set_door_state.call_args[0][0]
        assert target.login == "envuser"
        assert target.secret == "envpw"

    def test_end_to_end_against_mock_device(self, mock_device, tmp_path, capsys):
        """CLI drives a real device exchange via --door and a patched port."""
        device, port = mock_device
        log_dir = tmp_path / "logs"
        with patch("controller.cli.DeviceTarget") as mock_target:
            from common import DeviceTarget
            mock_target.side_effect = lambda **kw: DeviceTarget(port=port, **kw)
            rc = door_cli.main([
                "--ip", "127.0.0.1", "--login", "admin", "--password", "pw",
                "--state", "1", "--log-dir", str(log_dir), "--timeout", "5",
            ])

        assert rc == 0
        assert len(device.requests) == 2
        assert list(log_dir.glob("door_control_*.log"))
