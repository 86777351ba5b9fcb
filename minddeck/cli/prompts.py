"""
Console prompts expressed as request/response calls.

Each prompt returns the user's answer, or a "no selection" value (None or
False) when the user cancels; cancelling is never raised as an exception.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import typer
from rich.console import Console

from minddeck.undo import UndoOffer

console = Console()


@dataclass
class FormField:
    name: str
    label: str
    value: str = ""


async def ask_form(title: str, fields: Sequence[FormField]) -> Optional[Dict[str, str]]:
    """
    Ask for each field in turn, pre-filled with its current value.

    Returns:
        Optional[Dict[str, str]]: Answers keyed by field name, or None if the
            user aborted (Ctrl+C / end of input).
    """
    console.print(f"[bold]{title}[/bold]")
    answers: Dict[str, str] = {}
    try:
        for field in fields:
            answers[field.name] = typer.prompt(
                field.label,
                default=field.value,
                show_default=bool(field.value),
            )
    except typer.Abort:
        console.print("[dim]Cancelled.[/dim]")
        return None
    return answers


async def confirm_undo(offer: UndoOffer) -> bool:
    """
    Ask whether to undo a destructive operation.

    The console read blocks; an answer given after the window has closed is
    rejected by the offer itself.
    """
    try:
        return typer.confirm(
            f"{offer.message}. Undo? (within {offer.remaining:.0f}s)",
            default=False,
        )
    except typer.Abort:
        return False
