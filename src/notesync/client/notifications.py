"""Console implementations of the feedback and navigation services.

This module provides:
- ConsoleFeedback: toasts and messages printed with click
- ConsoleNavigation: remembers the requested dialog so the CLI can prompt
"""

from __future__ import annotations

import logging

import click

from notesync.client.sync.collaborators import Route

logger = logging.getLogger(__name__)


class ConsoleFeedback:
    """Prints toasts and messages to the terminal.

    Args:
        quiet: Suppress toasts (messages are still shown).
    """

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet
        self.toasts: list[str] = []
        self.messages: list[str] = []

    def show_toast(self, text: str) -> None:
        self.toasts.append(text)
        if not self.quiet:
            click.echo(text)

    async def show_message(self, text: str) -> None:
        self.messages.append(text)
        click.echo()
        click.echo(text)
        click.echo()

    def set_busy_indicator_visible(self, visible: bool) -> None:
        logger.debug(f"Busy indicator {'on' if visible else 'off'}")


class ConsoleNavigation:
    """Records where a step wanted to go.

    A terminal has no dialogs; the CLI reads `route` after a run and asks
    the matching questions itself.
    """

    def __init__(self) -> None:
        self.route: Route | None = None

    def navigate_to(self, route: Route) -> None:
        logger.debug(f"Navigate to {route.value}")
        self.route = route

    def open_url(self, url: str) -> None:
        click.echo(f"Open this address in a browser to log in:\n  {url}")
