from __future__ import annotations

import argparse
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from .config import load_config
from .errors import ConfigurationError, SessionExpiredError, ThreadSyncError
from .observer import ConsoleObserver
from .run import run_sync

load_dotenv(override=False)  # .env fills in, never overrides the real environment
console = Console()


def cmd_sync(args: argparse.Namespace) -> int:
    try:
        cfg = load_config(Path(args.config))
    except ConfigurationError as e:
        console.print(f"[red]Config error:[/red] {escape(str(e))}")
        return 2

    contact_name = (args.contact_name or "").strip() or "Unknown"
    console.print(f"[bold]Contact:[/bold] {escape(contact_name)}")
    try:
        run_sync(
            cfg,
            args.thread_url,
            args.sender_email,
            contact_name,
            cookies_path=Path(args.cookies) if args.cookies else None,
            observer=ConsoleObserver(console),
            summary_path=Path(args.summary_out) if args.summary_out else None,
        )
    except ConfigurationError as e:
        console.print(f"[red]Config error:[/red] {escape(str(e))}")
        return 2
    except SessionExpiredError as e:
        console.print(f"[red]Session error:[/red] {escape(str(e))}")
        return 1
    except ThreadSyncError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="threadsync",
        description="Sync an SS.LV conversation thread into Pipedrive notes.",
    )
    parser.add_argument("thread_url", help="SS.LV conversation URL")
    parser.add_argument("sender_email", help="Mailbox that received the notification (selects sender config)")
    parser.add_argument("contact_name", nargs="?", default="Unknown", help="Contact display name")
    parser.add_argument("--config", type=str, default="config.yml", help="Path to config.yml")
    parser.add_argument("--cookies", type=str, help="Override path to the session cookie file")
    parser.add_argument("--summary-out", type=str, help="Write the run summary JSON here")
    parser.set_defaults(func=cmd_sync)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except SystemExit:
        raise
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
