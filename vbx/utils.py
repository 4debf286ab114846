#!/usr/bin/env python3
"""
Common utilities for vbx.

This module contains shared logging, process management, and other utility functions
used across the vbx codebase.
"""

import logging
import os
import shutil
import subprocess
import sys
from typing import List, Optional


# Color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    WHITE = '\033[37m'

    # Bright colors
    BRIGHT_RED = '\033[91m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_YELLOW = '\033[93m'


class ColorFormatter(logging.Formatter):
    """Custom formatter with color support."""

    # Color mapping for different log levels
    COLORS = {
        logging.DEBUG: Colors.DIM + Colors.WHITE,
        logging.INFO: Colors.BRIGHT_BLUE,
        logging.WARNING: Colors.BRIGHT_YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
    }

    def __init__(self, fmt=None, datefmt=None, stream=None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.stream = stream if stream is not None else sys.stderr

    def format(self, record):
        color = self.COLORS.get(record.levelno, Colors.RESET)

        formatted = super().format(record)

        # Only colorize when the handler writes to a terminal
        if hasattr(self.stream, 'isatty') and self.stream.isatty():
            level_color = color + record.levelname + Colors.RESET
            formatted = formatted.replace(record.levelname, level_color, 1)

        return formatted


def setup_logging(verbose: bool = False, logger_name: Optional[str] = "vbx") -> logging.Logger:
    """
    Set up colored logging configuration.

    Diagnostics are written to stderr so command output on stdout stays
    usable in pipes.

    Args:
        verbose: Enable debug logging if True
        logger_name: Name of the logger to configure (default: the vbx package logger)

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()

    formatter = ColorFormatter(fmt="[%(levelname)s] %(message)s", stream=sys.stderr)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False

    return logger


def bold(text: str) -> str:
    """Wrap text in bold/reset escapes."""
    return f"{Colors.BOLD}{text}{Colors.RESET}"


def get_last_lines(text: str, num_lines: int = 20) -> List[str]:
    """
    Get the last N non-empty lines of captured output.

    Args:
        text: Captured stdout or stderr
        num_lines: Number of lines to retrieve from the end

    Returns:
        List of last N lines
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    return lines[-num_lines:] if len(lines) > num_lines else lines


def run_subprocess(cmd: List[str], debug: bool = False, **kwargs) -> subprocess.CompletedProcess:
    """
    Run a subprocess with stdout/stderr captured as text.

    Args:
        cmd: Command to run as list of strings
        debug: Whether to log the captured output of every command
        **kwargs: Additional keyword arguments for subprocess.run

    Returns:
        CompletedProcess with stdout/stderr captured

    On error, logs the last 20 lines of stdout/stderr at debug level. The
    caller decides what a non-zero exit code means.
    """
    logger = logging.getLogger(__name__)

    kwargs_copy = kwargs.copy()
    kwargs_copy.setdefault('capture_output', True)
    kwargs_copy.setdefault('text', True)

    logger.debug(f"Running command: {' '.join(cmd)}")

    result = subprocess.run(cmd, **kwargs_copy)

    if debug:
        for line in get_last_lines(result.stdout):
            logger.debug(f"stdout: {line}")

    if result.returncode != 0:
        logger.debug(f"Command failed with exit code {result.returncode}: {' '.join(cmd)}")
        if not debug:
            for line in get_last_lines(result.stdout):
                logger.debug(f"stdout: {line}")
        for line in get_last_lines(result.stderr):
            logger.debug(f"stderr: {line}")

    return result


def exec_interactive(cmd: List[str]) -> int:
    """
    Hand the terminal to an interactive program.

    On POSIX the current process is replaced and this function does not
    return. Elsewhere the program is run to completion and its exit code
    returned.
    """
    logger = logging.getLogger(__name__)

    if shutil.which(cmd[0]) is None:
        raise FileNotFoundError(f"{cmd[0]}: command not found")

    logger.debug(f"Handing terminal to: {' '.join(cmd)}")
    sys.stdout.flush()
    sys.stderr.flush()

    if os.name == 'posix':
        os.execvp(cmd[0], cmd)

    return subprocess.run(cmd).returncode
