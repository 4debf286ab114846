"""
Command implementations for vbx.

Each public method of Controller is one CLI verb: resolve the selector to a
single machine, make one VBoxManage call, then print or hand the terminal to
an interactive client. Failures are raised as VbxError subclasses and turned
into exit codes by the CLI layer.
"""

import logging
from typing import Dict, List, Optional, Tuple

import typer

from vbx.errors import FeatureUnavailableError, MissingArgumentError, PlatformError
from vbx.record import get_key, get_port, rdp_port
from vbx.utils import bold, exec_interactive
from vbx.vbox import VBoxManage

logger = logging.getLogger(__name__)

SSH_GUEST_PORT = 22
VNC_GUEST_PORT = 5900
VNC_BRIDGED_PORT = 5901

NAME_WIDTH = 30
STATE_WIDTH = 8
LABEL_WIDTH = 16


class Controller:
    """Dispatches vbx verbs to VBoxManage and interactive clients."""

    def __init__(self, vbox: Optional[VBoxManage] = None, ssh_client: str = "ssh",
                 rdp_client: str = "rdesktop", vnc_client: str = "vncviewer") -> None:
        self.vbox = vbox or VBoxManage()
        self.ssh_client = ssh_client
        self.rdp_client = rdp_client
        self.vnc_client = vnc_client

    def list_vms(self, selector: str = "") -> None:
        """Print name, state and OS type of every machine matching selector."""
        machines = self.vbox.match(selector)

        typer.echo(bold(f"{'Name':<{NAME_WIDTH}}{'State':<{STATE_WIDTH}} OS type"))
        for machine in machines:
            try:
                record = self.vbox.show_info(machine.uuid)
            except PlatformError as e:
                # Inaccessible or unregistered since the listing
                logger.warning(f"Cannot read {machine.name}: {e}")
                typer.echo(f"{machine.name:<{NAME_WIDTH}}{'inaccessible':<{STATE_WIDTH}}")
                continue
            name = get_key(record, 'name') or machine.name
            typer.echo(f"{name:<{NAME_WIDTH}}{get_key(record, 'VMState'):<{STATE_WIDTH}} "
                       f"{get_key(record, 'ostype')}")

    def info(self, selector: str) -> None:
        """Print identity, state and connection details of one machine."""
        uuid = self.vbox.resolve(selector)
        record = self.vbox.show_info(uuid)

        typer.echo(bold(_row("Name", get_key(record, 'name'))))
        typer.echo(_row("UUID", get_key(record, 'UUID') or uuid))
        typer.echo(_row("State", get_key(record, 'VMState')))
        typer.echo(_row("OS type", get_key(record, 'ostype')))

        if get_key(record, 'vrde') == "on":
            port = rdp_port(record)
            if port is not None:
                typer.echo(_row("RDP-port", port))
        else:
            typer.echo("RDP Off")

        nic = get_key(record, 'nic1')
        if nic == "nat":
            # Unmapped ports are left out
            for label, guest_port in (("SSH-port", SSH_GUEST_PORT), ("VNC-port", VNC_GUEST_PORT)):
                port = get_port(record, guest_port)
                if port is not None:
                    typer.echo(_row(label, port))
        elif nic == "bridged":
            typer.echo(_row("IP", self.vbox.guest_ip(uuid)))

    def start(self, selector: str) -> None:
        """Start a machine without a GUI window."""
        machine = self.vbox.resolve_machine(selector)
        self.vbox.start(machine.uuid)
        logger.info(f"Started {machine.name}")

    def stop(self, selector: str) -> None:
        """Press the virtual ACPI power button."""
        machine = self.vbox.resolve_machine(selector)
        self.vbox.acpi_power_button(machine.uuid)
        logger.info(f"Sent ACPI shutdown to {machine.name}")

    def kill(self, selector: str) -> None:
        """Power a machine off immediately."""
        machine = self.vbox.resolve_machine(selector)
        self.vbox.power_off(machine.uuid)
        logger.info(f"Powered off {machine.name}")

    def rename(self, selector: str, new_name: Optional[str]) -> None:
        if not new_name:
            raise MissingArgumentError("new name", "rename")

        machine = self.vbox.resolve_machine(selector)
        self.vbox.rename(machine.uuid, new_name)
        logger.info(f"Renamed {machine.name} to {new_name}")

    def ssh(self, selector: str, user: Optional[str]) -> int:
        """Open an SSH session to the guest."""
        if not user:
            raise MissingArgumentError("username", "ssh")

        uuid = self.vbox.resolve(selector)
        record = self.vbox.show_info(uuid)
        host, port = self._endpoint(uuid, record, SSH_GUEST_PORT, SSH_GUEST_PORT, "SSH")

        return self._launch([self.ssh_client, "-p", str(port), f"{user}@{host}"])

    def rdp(self, selector: str) -> int:
        """Open the VRDE console of the machine."""
        uuid = self.vbox.resolve(selector)
        record = self.vbox.show_info(uuid)

        if get_key(record, 'vrde') != "on":
            raise FeatureUnavailableError("RDP is disabled for this machine")

        port = rdp_port(record)
        if port is None:
            raise FeatureUnavailableError("RDP is enabled but no RDP port is configured")

        return self._launch([self.rdp_client, f"localhost:{port}"])

    def vnc(self, selector: str) -> int:
        """Open a VNC viewer on the guest's VNC server."""
        uuid = self.vbox.resolve(selector)
        record = self.vbox.show_info(uuid)
        host, port = self._endpoint(uuid, record, VNC_GUEST_PORT, VNC_BRIDGED_PORT, "VNC")

        return self._launch([self.vnc_client, f"{host}:{port}"])

    def _endpoint(self, uuid: str, record: Dict[str, str], guest_port: int,
                  bridged_port: int, service: str) -> Tuple[str, int]:
        """Host and port reaching guest_port, according to the first NIC's mode."""
        nic = get_key(record, 'nic1')

        if nic == "bridged":
            address = self.vbox.guest_ip(uuid)
            if not address:
                raise FeatureUnavailableError("Guest has not reported an IP address")
            return address, bridged_port

        if nic == "nat":
            port = get_port(record, guest_port)
            if port is None:
                raise FeatureUnavailableError(f"No {service} port forwarding to guest port {guest_port}")
            return "localhost", port

        raise FeatureUnavailableError(f"Unknown network interface '{nic}'")

    def _launch(self, cmd: List[str]) -> int:
        try:
            return exec_interactive(cmd)
        except FileNotFoundError:
            raise FeatureUnavailableError(f"{cmd[0]} not found")


def _row(label: str, value) -> str:
    return f"{label:<{LABEL_WIDTH}}{value}"
