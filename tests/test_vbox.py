"""
Unit tests for the VBoxManage wrapper.

These tests focus on selector resolution and on how VBoxManage output and
failures are interpreted.
"""

from unittest.mock import patch

import pytest

from conftest import BUILD_UUID, UBUNTU_UUID, WIN_UUID, completed
from vbx.errors import PlatformError, ResolutionError
from vbx.vbox import GUEST_IP_PROPERTY, Machine, VBoxManage


@pytest.mark.unit
class TestListVMs:
    """Test list_vms method."""

    def test_parses_names_and_uuids(self, vbox, fake_vbox):
        machines = vbox.list_vms()

        assert machines == [
            Machine("build-server", BUILD_UUID),
            Machine("Ubuntu Desktop", UBUNTU_UUID),
            Machine("win10", WIN_UUID),
        ]
        assert fake_vbox.calls == [["VBoxManage", "list", "vms"]]

    def test_custom_executable(self, mock_subprocess_run):
        mock_subprocess_run.return_value = completed("")

        VBoxManage("/opt/vbox/VBoxManage").list_vms()

        assert mock_subprocess_run.call_args[0][0] == ["/opt/vbox/VBoxManage", "list", "vms"]


@pytest.mark.unit
class TestResolve:
    """Test match and resolve methods."""

    def test_unique_match(self, vbox, fake_vbox):
        assert vbox.resolve("build") == BUILD_UUID

    def test_resolve_machine_returns_name_and_uuid(self, vbox, fake_vbox):
        assert vbox.resolve_machine("bui") == Machine("build-server", BUILD_UUID)

    def test_match_is_case_insensitive(self, vbox, fake_vbox):
        assert vbox.resolve("ubuntu") == UBUNTU_UUID

    def test_regular_expression(self, vbox, fake_vbox):
        assert vbox.resolve("^win[0-9]+$") == WIN_UUID

    def test_uuid_selects_machine(self, vbox, fake_vbox):
        assert vbox.resolve(WIN_UUID) == WIN_UUID

    def test_no_match_fails(self, vbox, fake_vbox):
        with pytest.raises(ResolutionError) as excinfo:
            vbox.resolve("nothing-like-this")

        assert excinfo.value.matches == []
        assert "No machine matches" in str(excinfo.value)

    def test_multiple_matches_fail(self, vbox, fake_vbox):
        with pytest.raises(ResolutionError) as excinfo:
            vbox.resolve("u")

        assert excinfo.value.matches == ["build-server", "Ubuntu Desktop"]
        assert "ambiguous" in str(excinfo.value)

    def test_empty_selector_matches_everything(self, vbox, fake_vbox):
        assert len(vbox.match("")) == 3
        with pytest.raises(ResolutionError):
            vbox.resolve("")

    def test_invalid_regular_expression(self, vbox, fake_vbox):
        with pytest.raises(ResolutionError) as excinfo:
            vbox.match("(unclosed")

        assert "Invalid selector" in str(excinfo.value)


@pytest.mark.unit
class TestInfo:
    """Test show_info and guest_ip methods."""

    def test_show_info(self, vbox, fake_vbox):
        record = vbox.show_info(BUILD_UUID)

        assert record["name"] == "build-server"
        assert record["nic1"] == "nat"
        assert fake_vbox.calls[-1] == ["VBoxManage", "showvminfo", BUILD_UUID, "--machinereadable"]

    def test_guest_ip(self, vbox, fake_vbox):
        assert vbox.guest_ip(UBUNTU_UUID) == "10.0.0.42"
        assert fake_vbox.calls[-1] == ["VBoxManage", "guestproperty", "get", UBUNTU_UUID, GUEST_IP_PROPERTY]

    def test_guest_ip_not_reported(self, vbox, fake_vbox):
        fake_vbox.guest_ip = ""

        assert vbox.guest_ip(UBUNTU_UUID) == ""


@pytest.mark.unit
class TestLifecycle:
    """Test lifecycle operations and their failures."""

    @pytest.mark.parametrize("method, args, expected", [
        ("start", (), ["startvm", BUILD_UUID, "--type", "headless"]),
        ("acpi_power_button", (), ["controlvm", BUILD_UUID, "acpipowerbutton"]),
        ("power_off", (), ["controlvm", BUILD_UUID, "poweroff"]),
        ("rename", ("new-name",), ["modifyvm", BUILD_UUID, "--name", "new-name"]),
    ])
    def test_command_lines(self, vbox, fake_vbox, method, args, expected):
        getattr(vbox, method)(BUILD_UUID, *args)

        assert fake_vbox.calls == [["VBoxManage"] + expected]

    def test_failure_raises_platform_error(self, vbox, fake_vbox):
        fake_vbox.failures["startvm"] = "The machine 'build-server' is already locked by a session"

        with pytest.raises(PlatformError) as excinfo:
            vbox.start(BUILD_UUID)

        assert excinfo.value.returncode == 1
        assert str(excinfo.value) == "The machine 'build-server' is already locked by a session"

    def test_missing_executable(self, vbox):
        with patch("vbx.utils.subprocess.run", side_effect=FileNotFoundError("VBoxManage")):
            with pytest.raises(PlatformError) as excinfo:
                vbox.list_vms()

        assert excinfo.value.returncode == 127
        assert "not found" in str(excinfo.value)
