"""
Confirmation capability for destructive operations.

A Confirm is any callable taking the question text and returning True to
proceed. The CLI uses the interactive prompt; tests and unattended runs pass
auto_confirm or auto_decline.
"""

from typing import Callable

import typer

Confirm = Callable[[str], bool]


def interactive_confirm(question: str) -> bool:
    """Ask the operator on the terminal. Defaults to no."""
    return typer.confirm(question, default=False)


def auto_confirm(question: str) -> bool:
    return True


def auto_decline(question: str) -> bool:
    return False
