"""
Command-line interface for studying a deck.
"""

import logging

from rich.console import Console
from rich.panel import Panel
from rich.progress_bar import ProgressBar

from minddeck.study import StudySession

logger = logging.getLogger(__name__)
console = Console()

_PROMPT = "[italic](Enter/f) flip  (n) next  (p) previous  (q) quit: [/italic]"


def _show_card(session: StudySession) -> None:
    """Print the progress header and the visible side of the current card."""
    console.rule(
        f"[bold]{session.progress_text}[/bold] ({session.progress_percent:.0f}%)"
    )
    console.print(ProgressBar(total=100, completed=session.progress_percent, width=40))
    if session.showing_back:
        console.print(Panel(session.visible_text, title="Back", border_style="blue"))
    else:
        console.print(Panel(session.visible_text, title="Front", border_style="green"))


def start_study_flow(session: StudySession) -> None:
    """
    Runs an interactive study loop over the session's cards until the user quits.

    Args:
        session: A StudySession positioned on its first card.
    """
    console.print(
        f"[bold cyan]Studying {session.deck_name} ({session.total} cards)[/bold cyan]"
    )
    _show_card(session)
    while True:
        try:
            command = console.input(_PROMPT).strip().lower()
        except EOFError:
            break

        if command in ("", "f"):
            session.flip()
        elif command == "n":
            session.next()
        elif command == "p":
            session.previous()
        elif command == "q":
            break
        else:
            console.print("[bold red]Unknown command.[/bold red]")
            continue
        _show_card(session)

    console.print("[bold cyan]Study session finished.[/bold cyan]")
