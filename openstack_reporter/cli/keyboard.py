"""
Keyboard handling utilities for the OpenStack Reporter CLI.

Provides ESC key detection feeding the collection cancel event.
"""

import atexit
import logging
import select
import sys
import threading
from contextlib import contextmanager
from typing import Generator

from rich.console import Console


logger = logging.getLogger(__name__)

# ESC key code
ESC_KEY = '\x1b'

# Set when the user asks to stop; checked by the report builder between steps
cancel_event = threading.Event()

# Terminal settings storage
_original_term_settings = None
_listener_active = False


def _setup_terminal() -> bool:
    """Set up terminal for raw input. Returns True if successful."""
    global _original_term_settings

    if not sys.stdin.isatty():
        return False

    try:
        import termios
        import tty

        fd = sys.stdin.fileno()
        _original_term_settings = termios.tcgetattr(fd)
        # cbreak keeps Ctrl+C working
        tty.setcbreak(fd)
        return True
    except Exception as e:
        logger.debug(f"ESC detection unavailable: {e}")
        return False


def _restore_terminal() -> None:
    """Restore terminal to original settings."""
    global _original_term_settings

    if _original_term_settings is not None:
        try:
            import termios
            fd = sys.stdin.fileno()
            termios.tcsetattr(fd, termios.TCSADRAIN, _original_term_settings)
        except Exception as e:
            logger.debug(f"Failed to restore terminal settings: {e}")
        _original_term_settings = None


def check_for_escape() -> bool:
    """Check if ESC key was pressed (non-blocking)."""
    if not sys.stdin.isatty():
        return False

    try:
        if select.select([sys.stdin], [], [], 0)[0]:
            return sys.stdin.read(1) == ESC_KEY
    except (OSError, ValueError) as e:
        logger.debug(f"Keyboard poll failed: {e}")

    return False


@contextmanager
def escape_listener() -> Generator[threading.Event, None, None]:
    """Enable ESC detection for the duration of a collection.

    Yields:
        The cancel event, cleared on entry
    """
    global _listener_active

    reset_cancel()
    _setup_terminal()
    _listener_active = True

    # Restore the terminal even on unexpected termination
    atexit.register(_restore_terminal)

    try:
        yield cancel_event
    finally:
        _listener_active = False
        _restore_terminal()
        atexit.unregister(_restore_terminal)


def poll_escape() -> None:
    """Set the cancel event if ESC was pressed.

    Call this periodically during long-running operations.
    """
    if _listener_active and check_for_escape():
        request_cancel()


def reset_cancel() -> None:
    cancel_event.clear()


def request_cancel() -> None:
    cancel_event.set()


def show_escape_hint(console: Console) -> None:
    console.print("[dim](Press ESC to stop after the current step)[/dim]")
    console.print()
