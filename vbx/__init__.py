"""
vbx - short commands for VirtualBox machines.

This package wraps VBoxManage with regular-expression machine selection,
compact listing and info output, lifecycle control and SSH/RDP/VNC launchers.
"""

__version__ = "1.0.0"

from .main import main

__all__ = ["main"]
