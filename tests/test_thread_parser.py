from __future__ import annotations

from pathlib import Path

import pytest

from threadsync.errors import ParseError
from threadsync.ingestion.models import UNKNOWN_DATE
from threadsync.ingestion.parser import parse_thread
from threadsync.observer import ReconcileObserver

FIXTURES = Path(__file__).parent / "fixtures"


def _page(body: str) -> str:
    return (
        '<html><body><div id="chat_dv" style="height: 420px;">'
        + body
        + '</div><div style="margin-top: 20px;">reply form</div></body></html>'
    )


def _block(message_id: str, time: str, text: str | None = None, sent: bool = False) -> str:
    color = "#d3f0f8" if sent else "#f1f1f1"
    script = f'<script>_out_text("{text}", "mail_content_{message_id}");</script>' if text is not None else ""
    return (
        f'<a name="{message_id}"></a>'
        f'<div style="background-color: {color};"><table><tr>'
        f'<td class="td7"><div id="mail_content_{message_id}"></div>{script}</td>'
        f'<td class="td15" align="right">{time}</td>'
        f"</tr></table></div>"
    )


def _date(label: str) -> str:
    return f'<div class="td15" style="text-align: center;">{label}</div>'


class _Recorder(ReconcileObserver):
    def __init__(self) -> None:
        self.skipped: list[str] = []

    def message_skipped(self, message_id: str) -> None:
        self.skipped.append(message_id)


def test_fixture_thread_sorted_by_id_with_dates_and_direction():
    html = (FIXTURES / "thread_three_messages.html").read_text(encoding="utf-8")
    thread = parse_thread(html)
    assert [m.id for m in thread.messages] == ["3", "5", "9"]
    by_id = {m.id: m for m in thread.messages}
    assert by_id["3"].direction == "sent"
    assert by_id["5"].direction == "received"
    assert by_id["5"].date == "12.03.2025"
    assert by_id["3"].date == "12.03.2025"
    assert by_id["9"].date == "13.03.2025"
    assert by_id["9"].text == "Vai auto vēl pārdošanā?"
    assert by_id["9"].time == "18:40"
    assert thread.opening_message.text == "Sveiki, vai auto vēl pieejams?"


def test_sort_is_numeric_not_lexicographic():
    html = _page(_date("01.02.2025") + _block("100", "10:00", "c") + _block("12", "09:00", "a") + _block("9", "08:00", "b"))
    thread = parse_thread(html)
    assert [m.id for m in thread.messages] == ["9", "12", "100"]


def test_block_before_any_date_gets_unknown_date():
    html = _page(_block("1", "08:00", "first") + _date("02.02.2025") + _block("2", "09:00", "second"))
    thread = parse_thread(html)
    assert [m.date for m in thread.messages] == [UNKNOWN_DATE, "02.02.2025"]


def test_each_block_takes_nearest_preceding_date():
    html = _page(
        _date("01.02.2025")
        + _block("1", "08:00", "a")
        + _block("2", "08:05", "b")
        + _date("03.02.2025")
        + _date("04.02.2025")
        + _block("3", "11:00", "c")
    )
    thread = parse_thread(html)
    assert [m.date for m in thread.messages] == ["01.02.2025", "01.02.2025", "04.02.2025"]


def test_block_without_text_is_skipped_and_reported():
    recorder = _Recorder()
    html = _page(_date("01.02.2025") + _block("1", "08:00", "hello") + _block("2", "08:01") + _block("3", "08:02", ""))
    thread = parse_thread(html, observer=recorder)
    assert [m.id for m in thread.messages] == ["1"]
    assert thread.skipped_ids == ("2", "3")
    assert recorder.skipped == ["2", "3"]


def test_duplicate_text_directive_last_wins():
    html = _page(
        _date("01.02.2025")
        + _block("1", "08:00", "old text")
        + '<script>_out_text("new text", "mail_content_1");</script>'
    )
    thread = parse_thread(html)
    assert thread.messages[0].text == "new text"


def test_sent_marker_is_case_insensitive():
    html = _page(
        '<a name="4"></a><div style="background-color: #D3F0F8;"><table><tr>'
        '<td><script>_out_text("hi", "mail_content_4");</script></td><td class="td15">12:00</td>'
        "</tr></table></div>"
    )
    thread = parse_thread(html)
    assert thread.messages[0].direction == "sent"


def test_sent_colour_in_message_text_does_not_mark_sent():
    html = _page(_date("12.03.2025") + _block("6", "09:15", "Krāsa kodā #D3F0F8, vai der?"))
    thread = parse_thread(html)
    assert thread.messages[0].direction == "received"
    assert thread.messages[0].text == "Krāsa kodā #D3F0F8, vai der?"


def test_sent_marker_on_nested_cell_attribute():
    html = _page(
        '<a name="8"></a><div><table><tr bgcolor="#d3f0f8">'
        '<td><script>_out_text("hi", "mail_content_8");</script></td><td class="td15">12:00</td>'
        "</tr></table></div>"
    )
    thread = parse_thread(html)
    assert thread.messages[0].direction == "sent"


def test_missing_container_raises():
    html = (FIXTURES / "thread_no_container.html").read_text(encoding="utf-8")
    with pytest.raises(ParseError):
        parse_thread(html)


def test_short_container_raises():
    with pytest.raises(ParseError, match="empty"):
        parse_thread('<div id="chat_dv"> </div>')


def test_no_message_blocks_raises():
    html = _page(_date("01.02.2025") + "<p>Šajā sarakstē vēl nav nevienas vēstules.</p>")
    with pytest.raises(ParseError, match="No message blocks"):
        parse_thread(html)


def test_anchor_without_time_cell_is_not_a_block():
    html = _page(
        _date("01.02.2025")
        + '<a name="7"></a><div><p>no time here</p></div>'
        + _block("8", "10:00", "kept")
    )
    thread = parse_thread(html)
    assert [m.id for m in thread.messages] == ["8"]
    assert thread.skipped_ids == ()
