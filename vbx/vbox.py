"""
Access to VirtualBox through its VBoxManage command-line tool.

Every platform call made by vbx goes through the VBoxManage class below.
Nothing is cached: each command re-reads the machine list and records.
"""

import logging
import re
from collections import namedtuple
from typing import List

from vbx.errors import PlatformError, ResolutionError
from vbx.record import Record, parse_record
from vbx.utils import get_last_lines, run_subprocess

logger = logging.getLogger(__name__)

Machine = namedtuple('Machine', ('name', 'uuid'))

GUEST_IP_PROPERTY = "/VirtualBox/GuestInfo/Net/0/V4/IP"

_LIST_RE = re.compile(r'^"(?P<name>.*)"\s+\{(?P<uuid>[^}]+)\}\s*$')
_VALUE_RE = re.compile(r'^Value:\s*(?P<value>\S*)', re.MULTILINE)
_ERROR_PREFIX_RE = re.compile(r'^\S+:\s*error:\s*', re.IGNORECASE)


class VBoxManage:
    """Thin wrapper around the VBoxManage executable."""

    def __init__(self, command: str = "VBoxManage", debug: bool = False) -> None:
        self.command = command
        self.debug = debug

    def _run(self, *args: str) -> str:
        cmd = [self.command] + [str(arg) for arg in args]
        try:
            result = run_subprocess(cmd, debug=self.debug)
        except FileNotFoundError:
            raise PlatformError(cmd, 127, f"{self.command} not found, is VirtualBox installed?")

        if result.returncode != 0:
            raise PlatformError(cmd, result.returncode, self._error_detail(result.stderr))
        return result.stdout

    @staticmethod
    def _error_detail(stderr: str) -> str:
        """Pick the most useful line of a VBoxManage error report."""
        lines = get_last_lines(stderr, 50)
        for line in lines:
            if _ERROR_PREFIX_RE.match(line):
                return _ERROR_PREFIX_RE.sub('', line).strip()
        return lines[-1].strip() if lines else ""

    def list_vms(self) -> List[Machine]:
        """All registered machines, as printed by `list vms`."""
        machines = []
        for line in self._run("list", "vms").splitlines():
            match = _LIST_RE.match(line)
            if match:
                machines.append(Machine(match.group('name'), match.group('uuid')))
        return machines

    def match(self, selector: str) -> List[Machine]:
        """
        Machines whose name matches selector.

        The selector is a case-insensitive regular expression searched
        anywhere in the name; an empty selector matches every machine. A
        selector equal to a machine's UUID selects that machine.
        """
        selector = selector or ""
        try:
            pattern = re.compile(selector, re.IGNORECASE)
        except re.error as e:
            raise ResolutionError(selector, reason=str(e))

        return [
            machine for machine in self.list_vms()
            if pattern.search(machine.name) or machine.uuid.lower() == selector.lower()
        ]

    def resolve_machine(self, selector: str) -> Machine:
        """The single machine matching selector."""
        matches = self.match(selector)
        if len(matches) != 1:
            raise ResolutionError(selector, [m.name for m in matches])

        machine = matches[0]
        logger.debug(f"Selector '{selector}' resolved to {machine.name} {{{machine.uuid}}}")
        return machine

    def resolve(self, selector: str) -> str:
        """UUID of the single machine matching selector."""
        return self.resolve_machine(selector).uuid

    def show_info(self, uuid: str) -> Record:
        """Machine-readable record of one machine."""
        return parse_record(self._run("showvminfo", uuid, "--machinereadable"))

    def guest_ip(self, uuid: str) -> str:
        """
        IPv4 address reported by the guest additions.

        Empty when the guest has not reported one, e.g. because it is not
        running or has no guest additions.
        """
        match = _VALUE_RE.search(self._run("guestproperty", "get", uuid, GUEST_IP_PROPERTY))
        return match.group('value') if match else ""

    def start(self, uuid: str) -> None:
        self._run("startvm", uuid, "--type", "headless")

    def acpi_power_button(self, uuid: str) -> None:
        self._run("controlvm", uuid, "acpipowerbutton")

    def power_off(self, uuid: str) -> None:
        self._run("controlvm", uuid, "poweroff")

    def rename(self, uuid: str, new_name: str) -> None:
        self._run("modifyvm", uuid, "--name", new_name)
