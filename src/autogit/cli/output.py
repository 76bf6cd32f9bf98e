"""Rendering helpers for event streams and user-facing output."""

import sys
import threading
from collections.abc import Generator
from typing import TypeVar

import click

from autogit.core.events import CompletionEvent, ProgressEvent

T = TypeVar("T")

# Style mapping for progress events
STYLE_MAP: dict[str, dict[str, str | bool]] = {
    "info": {},
    "success": {"fg": "green"},
    "warning": {"fg": "yellow"},
    "error": {"fg": "red", "bold": True},
    "progress": {"fg": "cyan"},
}

# The heartbeat thread writes concurrently with the main loop
_echo_lock = threading.Lock()


def user_output(message: str) -> None:
    """Write a line for the user to stderr."""
    with _echo_lock:
        click.echo(message, err=True)


def echo_event(event: ProgressEvent) -> None:
    with _echo_lock:
        click.echo(click.style(f"  {event.message}", **STYLE_MAP[event.level]), err=True)
        sys.stderr.flush()


def render_events(
    events: Generator[ProgressEvent | CompletionEvent[T]],
) -> T:
    """Consume event stream, render progress to stderr, return result.

    Raises:
        RuntimeError: If operation ends without a CompletionEvent
    """
    for event in events:
        match event:
            case ProgressEvent():
                echo_event(event)
            case CompletionEvent(result=result):
                return result
    raise RuntimeError("Operation ended without completion")
