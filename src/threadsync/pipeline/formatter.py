from __future__ import annotations

from ..ingestion.models import Message

TITLE_EXCERPT_CHARS = 10

_STYLES = {
    "sent": ("#2196F3", "\U0001F535", "Sent"),
    "received": ("#4CAF50", "\U0001F7E2", "Received"),
}


def format_note(message: Message) -> str:
    """
    Render one message as a Pipedrive note.
    The text goes in verbatim: later runs find it again by substring search.
    """
    border, icon, label = _STYLES[message.direction]
    return (
        f'<div style="border-left: 4px solid {border}; padding: 6px 12px; margin: 2px 0; '
        f'font-family: Arial, sans-serif;">\n'
        f'  <div style="font-size: 11px; color: #555; margin-bottom: 4px;">\n'
        f"    {icon} <b>{label}</b> &nbsp;|&nbsp; <b>[{message.time} &nbsp; {message.date}]</b>\n"
        f"  </div>\n"
        f'  <div style="font-size: 13px; color: #222;">\n'
        f"    {message.text}\n"
        f"  </div>\n"
        f"</div>"
    )


def format_thread_link_note(thread_url: str) -> str:
    return (
        '<div style="font-size:11px; color:#999; margin-bottom:8px;">'
        f'<b>SS thread:</b> <a href="{thread_url}">{thread_url}</a></div>'
    )


def build_deal_title(prefix: str, first_name: str, opening_text: str) -> str:
    return f'{prefix} - {first_name} - "{opening_text[:TITLE_EXCERPT_CHARS]}..."'
