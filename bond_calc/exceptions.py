"""Errors raised by the calculation engine."""

from __future__ import annotations

from typing import Optional


class InvalidInput(ValueError):
    """A calculator input is missing, negative or out of range.

    ``field`` names the offending input when it is known so that form layers
    can attach the message to the right control.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field
