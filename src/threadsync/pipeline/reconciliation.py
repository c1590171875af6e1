"""
Map a parsed thread onto a Pipedrive person/deal and append the messages
that are not yet recorded as notes.

Dedup is by substring: a message counts as recorded when its text appears
inside any note of the owning deal. The owning deal is the first deal of the
matched person whose notes contain the opening message.

Every gateway call is issued in program order and nothing is retried or
rolled back; a person or deal created before a later failure stays. There is
no lock across runs: two concurrent reconciliations of the same thread can
both miss each other's notes and append the messages twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from ..config import SenderConfig
from ..crm.client import RecordGateway
from ..crm.models import Deal, Note, Person
from ..errors import ConfigurationError, EmptyThreadError
from ..ingestion.models import Message, Thread
from ..observer import NullObserver, ReconcileObserver
from .formatter import build_deal_title, format_note, format_thread_link_note

CREATED_NEW_DEAL = "created_new_deal"
SYNCED_NOTES_TO_EXISTING_DEAL = "synced_notes_to_existing_deal"

Action = Literal["created_new_deal", "synced_notes_to_existing_deal"]


@dataclass(frozen=True)
class DealFields:
    """Custom deal field ids (numeric) and the owner for created records."""

    channel_field_id: int
    company_field_id: int
    owner_id: int


@dataclass
class ReconcileResult:
    person_id: int
    deal_id: int
    notes_added: int
    action: Action

    def as_dict(self) -> Dict[str, Any]:
        return {
            "person_id": self.person_id,
            "deal_id": self.deal_id,
            "notes_added": self.notes_added,
            "action": self.action,
        }


@dataclass
class _OwningDeal:
    deal: Deal
    notes: List[Note]


def first_name_token(contact_name: str) -> str:
    parts = (contact_name or "").split()
    return parts[0] if parts else "Unknown"


def is_recorded(text: str, notes: List[Note]) -> bool:
    return any(text in n.content for n in notes)


def find_person(gateway: RecordGateway, first_name: str) -> Optional[Person]:
    wanted = first_name.lower()
    for person in gateway.search_persons(first_name):
        if person.first_name.lower() == wanted:
            return person
    return None


def find_owning_deal(
    gateway: RecordGateway,
    person: Person,
    opening: Message,
    observer: ReconcileObserver,
) -> Optional[_OwningDeal]:
    deals = gateway.list_person_deals(person.id)
    observer.deals_found(len(deals))
    for deal in deals:
        notes = gateway.list_deal_notes(deal.id)
        if is_recorded(opening.text, notes):
            return _OwningDeal(deal=deal, notes=notes)
    return None


def sync_missing_notes(
    gateway: RecordGateway,
    thread: Thread,
    owning: _OwningDeal,
    observer: ReconcileObserver,
) -> int:
    added = 0
    for message in thread.messages:
        if is_recorded(message.text, owning.notes):
            observer.note_present(message)
            continue
        gateway.add_note(owning.deal.id, format_note(message))
        observer.note_added(message)
        added += 1
    return added


def _resolve_field_keys(gateway: RecordGateway, fields: DealFields) -> Dict[str, str]:
    channel_key, company_key = gateway.deal_field_keys(fields.channel_field_id, fields.company_field_id)
    if not channel_key or not company_key:
        raise ConfigurationError("Could not resolve custom deal field keys")
    return {"channel": channel_key, "company": company_key}


def reconcile(
    thread: Thread,
    sender: SenderConfig,
    contact_name: str,
    gateway: RecordGateway,
    *,
    thread_url: str,
    fields: DealFields,
    observer: Optional[ReconcileObserver] = None,
) -> ReconcileResult:
    observer = observer or NullObserver()
    if len(thread) == 0:
        raise EmptyThreadError("No messages found in conversation")
    opening = thread.opening_message
    first_name = first_name_token(contact_name)

    keys = _resolve_field_keys(gateway, fields)

    person = find_person(gateway, first_name)
    if person is not None:
        observer.person_found(person)
        owning = find_owning_deal(gateway, person, opening, observer)
        if owning is not None:
            observer.owning_deal_found(owning.deal)
            added = sync_missing_notes(gateway, thread, owning, observer)
            result = ReconcileResult(
                person_id=person.id,
                deal_id=owning.deal.id,
                notes_added=added,
                action=SYNCED_NOTES_TO_EXISTING_DEAL,
            )
            observer.finished(result)
            return result

    observer.no_owning_deal()
    if person is not None:
        person_id = person.id
    else:
        person_id = gateway.create_person((contact_name or "").strip() or "Unknown", fields.owner_id)
        observer.person_created(person_id)

    title = build_deal_title(sender.deal_title_prefix, first_name, opening.text)
    deal_id = gateway.create_deal(
        title,
        fields.owner_id,
        person_id,
        {keys["channel"]: sender.channel_option_id, keys["company"]: sender.company_option_id},
    )
    observer.deal_created(deal_id, title)

    gateway.add_note(deal_id, format_thread_link_note(thread_url))
    added = 0
    for message in thread.messages:
        gateway.add_note(deal_id, format_note(message))
        observer.note_added(message)
        added += 1

    result = ReconcileResult(person_id=person_id, deal_id=deal_id, notes_added=added, action=CREATED_NEW_DEAL)
    observer.finished(result)
    return result
