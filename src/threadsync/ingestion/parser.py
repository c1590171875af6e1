from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..errors import ParseError
from ..observer import NullObserver, ReconcileObserver
from .models import UNKNOWN_DATE, Message, Thread

CHAT_CONTAINER_ID = "chat_dv"
MARKER_CLASS = "td15"
SENT_BACKGROUND = "#d3f0f8"
MIN_CONTAINER_CHARS = 50

# _out_text("<text>", "mail_content_<id>");
_OUT_TEXT_RE = re.compile(r'_out_text\("([^"]*)",\s*"mail_content_(\d+)"\)')


@dataclass
class _DateMarker:
    position: int
    text: str


@dataclass
class _Block:
    position: int
    message_id: str
    time: str
    sent: bool


def _has_class(tag: Tag, name: str) -> bool:
    return name in (tag.get("class") or [])


def _find_container(soup: BeautifulSoup) -> Tag:
    container = soup.find(id=CHAT_CONTAINER_ID)
    if not isinstance(container, Tag):
        raise ParseError("Could not find chat container in HTML")
    if len(container.decode_contents().strip()) < MIN_CONTAINER_CHARS:
        raise ParseError("Chat container is empty")
    return container


def extract_message_texts(container: Tag) -> Dict[str, str]:
    """
    Map message id -> text from the inline _out_text script directives.
    A repeated id keeps the last text seen.
    """
    texts: Dict[str, str] = {}
    for script in container.find_all("script"):
        body = script.string or ""
        for m in _OUT_TEXT_RE.finditer(body):
            texts[m.group(2)] = m.group(1)
    return texts


def _message_block(anchor: Tag, position: int) -> Optional[_Block]:
    message_id = str(anchor.get("name") or "")
    if not message_id.isdigit():
        return None
    block = anchor.find_next_sibling()
    if not isinstance(block, Tag) or block.name != "div":
        return None
    time_cell = block.find("td", class_=MARKER_CLASS)
    if not isinstance(time_cell, Tag):
        return None
    time = time_cell.get_text(strip=True)
    if not time:
        return None
    return _Block(position=position, message_id=message_id, time=time, sent=_has_sent_marker(block))


def _has_sent_marker(block: Tag) -> bool:
    # attribute values only; message text and script bodies never count
    for tag in [block, *block.find_all(True)]:
        if tag.name == "script":
            continue
        for value in tag.attrs.values():
            if isinstance(value, list):
                value = " ".join(value)
            if SENT_BACKGROUND in str(value).lower():
                return True
    return False


def scan_container(container: Tag) -> Tuple[List[_DateMarker], List[_Block]]:
    """
    Walk the container in document order and collect date headers and
    message blocks, each tagged with its position in the walk.
    """
    dates: List[_DateMarker] = []
    blocks: List[_Block] = []
    for position, node in enumerate(container.descendants):
        if not isinstance(node, Tag):
            continue
        if node.name == "div" and _has_class(node, MARKER_CLASS):
            text = node.get_text(" ", strip=True)
            if text:
                dates.append(_DateMarker(position=position, text=text))
        elif node.name == "a" and node.has_attr("name"):
            block = _message_block(node, position)
            if block is not None:
                blocks.append(block)
    return dates, blocks


def assign_dates(dates: List[_DateMarker], blocks: List[_Block]) -> List[str]:
    """
    Two-pointer merge: each block gets the latest date header positioned
    before it. Both lists are in document order.
    """
    labels: List[str] = []
    current: Optional[str] = None
    i = 0
    for block in blocks:
        while i < len(dates) and dates[i].position < block.position:
            current = dates[i].text
            i += 1
        labels.append(current or UNKNOWN_DATE)
    return labels


def parse_thread(html: str, observer: Optional[ReconcileObserver] = None) -> Thread:
    observer = observer or NullObserver()
    soup = BeautifulSoup(html or "", "html.parser")
    container = _find_container(soup)

    texts = extract_message_texts(container)
    dates, blocks = scan_container(container)
    if not blocks:
        raise ParseError("No message blocks found in chat container")

    by_id: Dict[str, Message] = {}
    skipped: List[str] = []
    for block, date in zip(blocks, assign_dates(dates, blocks)):
        text = texts.get(block.message_id) or ""
        if not text:
            skipped.append(block.message_id)
            observer.message_skipped(block.message_id)
            continue
        by_id[block.message_id] = Message(
            id=block.message_id,
            text=text,
            time=block.time,
            date=date,
            direction="sent" if block.sent else "received",
        )

    messages = sorted(by_id.values(), key=lambda m: m.numeric_id)
    thread = Thread(messages=tuple(messages), skipped_ids=tuple(skipped))
    observer.thread_parsed(thread)
    return thread
