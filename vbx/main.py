"""
Main entry point for the vbx command-line interface.

This module contains all the CLI command definitions and the main entry point.
The command implementations are in controller.py.
"""

import logging
import sys
from typing import Callable, Optional

import click
import typer
from typer.core import TyperGroup

from vbx import __version__
from vbx.controller import Controller
from vbx.errors import VbxError
from vbx.utils import setup_logging
from vbx.vbox import VBoxManage

logger = logging.getLogger(__name__)

# Global state for options
_global_state = {
    "verbose": False,
    "debug": False,
    "vboxmanage": "VBoxManage",
    "ssh_client": "ssh",
    "rdp_client": "rdesktop",
    "vnc_client": "vncviewer",
}


class UsageGroup(TyperGroup):
    """Command group that shows the full usage for an unknown verb."""

    def resolve_command(self, ctx, args):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            typer.echo(ctx.get_help())
            raise


# Initialize typer app
app = typer.Typer(
    name="vbx",
    cls=UsageGroup,
    help="Short commands for VirtualBox machines, selected by regular expression",
    add_completion=False,
    epilog="""
Examples:
  vbx list
  vbx list ubuntu
  vbx info '^build'
  vbx start build
  vbx rename build build-old
  vbx ssh build dev
  vbx rdp win10
  vbx vnc build
    """
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"vbx {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging, including output of VBoxManage calls"),
    vboxmanage: str = typer.Option("VBoxManage", "--vboxmanage", help="VBoxManage executable"),
    ssh_client: str = typer.Option("ssh", "--ssh-client", help="SSH client executable"),
    rdp_client: str = typer.Option("rdesktop", "--rdp-client", help="RDP client executable"),
    vnc_client: str = typer.Option("vncviewer", "--vnc-client", help="VNC client executable"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Short commands for VirtualBox machines, selected by regular expression."""
    _global_state["verbose"] = verbose
    _global_state["debug"] = debug
    _global_state["vboxmanage"] = vboxmanage
    _global_state["ssh_client"] = ssh_client
    _global_state["rdp_client"] = rdp_client
    _global_state["vnc_client"] = vnc_client

    # Debug takes precedence over verbose
    setup_logging(verbose=verbose or debug)
    if debug:
        logger.debug("Debug mode enabled - logging output of all VBoxManage calls")

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _make_controller() -> Controller:
    vbox = VBoxManage(_global_state["vboxmanage"], debug=_global_state["debug"])
    return Controller(
        vbox,
        ssh_client=_global_state["ssh_client"],
        rdp_client=_global_state["rdp_client"],
        vnc_client=_global_state["vnc_client"],
    )


def _run_command(action: Callable, *args) -> None:
    """Run a controller action, mapping failures to exit codes."""
    controller = _make_controller()

    try:
        result = action(controller, *args)
    except VbxError as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        raise typer.Exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        raise typer.Exit(1)

    # Interactive clients only return here where exec is unavailable
    if result:
        raise typer.Exit(result)


@app.command("list")
def list_vms(
    selector: str = typer.Argument("", help="Regular expression on machine names (default: all)")
) -> None:
    """List machines with their state and OS type."""
    _run_command(Controller.list_vms, selector)


@app.command()
def info(
    selector: str = typer.Argument("", help="Regular expression selecting one machine")
) -> None:
    """Show state and connection details of a machine."""
    _run_command(Controller.info, selector)


@app.command()
def start(
    selector: str = typer.Argument("", help="Regular expression selecting one machine")
) -> None:
    """Start a machine headless."""
    _run_command(Controller.start, selector)


@app.command()
def stop(
    selector: str = typer.Argument("", help="Regular expression selecting one machine")
) -> None:
    """Shut a machine down with the ACPI power button."""
    _run_command(Controller.stop, selector)


@app.command()
def kill(
    selector: str = typer.Argument("", help="Regular expression selecting one machine")
) -> None:
    """Power a machine off immediately."""
    _run_command(Controller.kill, selector)


@app.command()
def rename(
    selector: str = typer.Argument("", help="Regular expression selecting one machine"),
    new_name: Optional[str] = typer.Argument(None, help="New machine name")
) -> None:
    """Rename a machine."""
    _run_command(Controller.rename, selector, new_name)


@app.command()
def ssh(
    selector: str = typer.Argument("", help="Regular expression selecting one machine"),
    user: Optional[str] = typer.Argument(None, help="Login name on the guest")
) -> None:
    """Open an SSH session to a machine."""
    _run_command(Controller.ssh, selector, user)


@app.command()
def rdp(
    selector: str = typer.Argument("", help="Regular expression selecting one machine")
) -> None:
    """Open the RDP console of a machine."""
    _run_command(Controller.rdp, selector)


@app.command()
def vnc(
    selector: str = typer.Argument("", help="Regular expression selecting one machine")
) -> None:
    """Open a VNC viewer on a machine."""
    _run_command(Controller.vnc, selector)


def main() -> None:
    """Main entry point for vbx command."""
    app()


if __name__ == "__main__":
    sys.exit(main())
