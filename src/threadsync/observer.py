from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from .crm.models import Deal, Person
    from .ingestion.models import Message, Thread
    from .pipeline.reconciliation import ReconcileResult


def _excerpt(text: str, width: int = 40) -> str:
    return escape(f"{text[:width]}..." if len(text) > width else text)


class ReconcileObserver:
    """
    Receives progress events from the fetch/parse/reconcile pipeline.
    Every hook is a no-op here; subclasses override what they care about.
    """

    def page_loaded(self, url: str, size: int) -> None:
        pass

    def session_stale(self, expires: str) -> None:
        pass

    def message_skipped(self, message_id: str) -> None:
        pass

    def thread_parsed(self, thread: "Thread") -> None:
        pass

    def person_found(self, person: "Person") -> None:
        pass

    def person_created(self, person_id: int) -> None:
        pass

    def deals_found(self, count: int) -> None:
        pass

    def owning_deal_found(self, deal: "Deal") -> None:
        pass

    def no_owning_deal(self) -> None:
        pass

    def deal_created(self, deal_id: int, title: str) -> None:
        pass

    def note_added(self, message: "Message") -> None:
        pass

    def note_present(self, message: "Message") -> None:
        pass

    def finished(self, result: "ReconcileResult") -> None:
        pass


NullObserver = ReconcileObserver


class ConsoleObserver(ReconcileObserver):
    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def page_loaded(self, url: str, size: int) -> None:
        self.console.print(f"[bold]Fetched thread:[/bold] {escape(url)} ({size} bytes)")

    def session_stale(self, expires: str) -> None:
        self.console.print(f"[yellow]Session cookies expired at {expires}; trying anyway.[/yellow]")

    def message_skipped(self, message_id: str) -> None:
        self.console.print(f"[yellow]No text for message ID {message_id}, skipping[/yellow]")

    def thread_parsed(self, thread: "Thread") -> None:
        self.console.print(f"[bold]Messages found:[/bold] {len(thread)}")

    def person_found(self, person: "Person") -> None:
        self.console.print(f"[green]Found existing person:[/green] {escape(person.name)} (ID: {person.id})")

    def person_created(self, person_id: int) -> None:
        self.console.print(f"[green]Created person[/green] (ID: {person_id})")

    def deals_found(self, count: int) -> None:
        self.console.print(f"Found {count} deal(s) for this person")

    def owning_deal_found(self, deal: "Deal") -> None:
        self.console.print(f"[green]Found matching deal[/green] (ID: {deal.id}), checking for missing messages")

    def no_owning_deal(self) -> None:
        self.console.print("[cyan]No duplicate found, creating new deal[/cyan]")

    def deal_created(self, deal_id: int, title: str) -> None:
        self.console.print(f"[green]Created deal[/green] (ID: {deal_id}): {escape(title)}")

    def note_added(self, message: "Message") -> None:
        self.console.print(f"  Added note: \"{_excerpt(message.text)}\"")

    def note_present(self, message: "Message") -> None:
        self.console.print(f"  [dim]Already exists: \"{_excerpt(message.text)}\"[/dim]")

    def finished(self, result: "ReconcileResult") -> None:
        self.console.print(f"[bold green]Done:[/bold green] {result.action}")
        self.console.print(f"[bold]Person ID:[/bold] {result.person_id}")
        self.console.print(f"[bold]Deal ID:[/bold] {result.deal_id}")
        self.console.print(f"[bold]Notes added:[/bold] {result.notes_added}")
