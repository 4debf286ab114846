"""
Test configuration and shared fixtures for vbx tests.
"""

import logging
from typing import Dict, List
from unittest.mock import Mock, patch

import pytest

from vbx.controller import Controller
from vbx.vbox import VBoxManage

LIST_VMS_OUTPUT = """\
"build-server" {11111111-1111-1111-1111-111111111111}
"Ubuntu Desktop" {22222222-2222-2222-2222-222222222222}
"win10" {33333333-3333-3333-3333-333333333333}
"""

BUILD_UUID = "11111111-1111-1111-1111-111111111111"
UBUNTU_UUID = "22222222-2222-2222-2222-222222222222"
WIN_UUID = "33333333-3333-3333-3333-333333333333"

NAT_RECORD = """\
name="build-server"
groups="/"
ostype="Ubuntu_64"
UUID="11111111-1111-1111-1111-111111111111"
memory=2048
VMState="running"
vrde="off"
nic1="nat"
Forwarding(0)="ssh,tcp,,2222,,22"
Forwarding(1)="vnc,tcp,127.0.0.1,15900,,5900"
"""

BRIDGED_RECORD = """\
name="Ubuntu Desktop"
ostype="Ubuntu_64"
UUID="22222222-2222-2222-2222-222222222222"
VMState="poweroff"
vrde="off"
nic1="bridged"
"""

RDP_RECORD = """\
name="win10"
ostype="Windows10_64"
UUID="33333333-3333-3333-3333-333333333333"
VMState="running"
vrde="on"
vrdeports="rule,tcp,,3389,,3389"
nic1="hostonly"
"""

RECORDS = {
    BUILD_UUID: NAT_RECORD,
    UBUNTU_UUID: BRIDGED_RECORD,
    WIN_UUID: RDP_RECORD,
}


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> Mock:
    """A CompletedProcess-like result."""
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


class FakeVBoxManage:
    """Answers VBoxManage command lines from canned output."""

    def __init__(self, records: Dict[str, str], guest_ip: str = "10.0.0.42") -> None:
        self.records = dict(records)
        self.guest_ip = guest_ip
        self.failures: Dict[str, str] = {}
        self.calls: List[List[str]] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        verb = cmd[1]

        if verb in self.failures:
            return completed("", 1, f"VBoxManage: error: {self.failures[verb]}\n"
                                    "VBoxManage: error: Details: code VBOX_E_INVALID_OBJECT_STATE\n")
        if verb == "list":
            return completed(LIST_VMS_OUTPUT)
        if verb == "showvminfo":
            return completed(self.records[cmd[2]])
        if verb == "guestproperty":
            if self.guest_ip:
                return completed(f"Value: {self.guest_ip}\n")
            return completed("No value set!\n")
        return completed("")

    def verbs(self) -> List[str]:
        return [call[1] for call in self.calls]


@pytest.fixture
def fake_vbox():
    """Route VBoxManage invocations to a FakeVBoxManage."""
    fake = FakeVBoxManage(RECORDS)
    with patch("vbx.utils.subprocess.run", side_effect=fake):
        yield fake


@pytest.fixture
def mock_subprocess_run():
    """Mock subprocess.run for controlled testing."""
    with patch("vbx.utils.subprocess.run") as mock_run:
        mock_run.return_value = completed("mocked output")
        yield mock_run


@pytest.fixture
def vbox() -> VBoxManage:
    return VBoxManage()


@pytest.fixture
def controller() -> Controller:
    return Controller(VBoxManage())


@pytest.fixture
def mock_exec():
    """Mock the interactive client launcher."""
    with patch("vbx.controller.exec_interactive", return_value=0) as mock_launch:
        yield mock_launch


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to streams of a finished test."""
    yield
    logger = logging.getLogger("vbx")
    logger.handlers = []
    logger.propagate = True


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "cli: command-line interface tests")
