"""Notifier interface and the console implementation used by the CLI."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Protocol

import typer

DOUBLE_PULSE_GAP_S = 0.3


class PulseKind(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"


class Notifier(Protocol):
    def pulse(self, kind: PulseKind) -> None:
        """Deliver haptic/audible feedback without blocking the caller."""

    def alert(self, title: str, body: str) -> None:
        """Deliver a user-visible notification."""


class ConsoleNotifier:
    """Rings the terminal bell and writes alerts to stderr."""

    def __init__(self, *, bell: bool = True) -> None:
        self.bell = bell

    def _ring(self) -> None:
        if self.bell:
            typer.echo("\a", nl=False, err=True)

    def pulse(self, kind: PulseKind) -> None:
        self._ring()
        if kind is not PulseKind.DOUBLE:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._ring()
            return
        loop.call_later(DOUBLE_PULSE_GAP_S, self._ring)

    def alert(self, title: str, body: str) -> None:
        typer.echo(f"{title}: {body}", err=True)
