from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from threadsync.crm.models import Deal, Note, Person
from threadsync.errors import GatewayError


class FakePipedrive:
    """In-memory stand-in for PipedriveClient that records every call."""

    def __init__(self, field_keys: Tuple[Optional[str], Optional[str]] = ("chan_key", "comp_key")) -> None:
        self.field_keys = field_keys
        self.persons: List[Person] = []
        self.deals: List[Deal] = []
        self.notes: List[Note] = []
        self.deal_custom_fields: Dict[int, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.fail_on: Dict[str, int] = {}
        self._next_id = 100

    def _call(self, name: str) -> None:
        self.calls.append(name)
        # fail_on maps a method name to the 1-based call that should fail
        if self.fail_on.get(name) == self.calls.count(name):
            raise GatewayError(name, "injected failure", 500)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # seeding helpers
    def seed_person(self, name: str) -> Person:
        person = Person(id=self._new_id(), name=name)
        self.persons.append(person)
        return person

    def seed_deal(self, person: Person, title: str = "Existing deal") -> Deal:
        deal = Deal(id=self._new_id(), title=title, person_id=person.id)
        self.deals.append(deal)
        return deal

    def seed_note(self, deal: Deal, content: str) -> Note:
        note = Note(id=self._new_id(), content=content, deal_id=deal.id)
        self.notes.append(note)
        return note

    def notes_for(self, deal_id: int) -> List[Note]:
        return [n for n in self.notes if n.deal_id == deal_id]

    # gateway surface
    def deal_field_keys(self, channel_field_id: int, company_field_id: int):
        self._call("deal_field_keys")
        return self.field_keys

    def search_persons(self, term: str) -> List[Person]:
        self._call("search_persons")
        return [p for p in self.persons if term.lower() in p.name.lower()]

    def list_person_deals(self, person_id: int) -> List[Deal]:
        self._call("list_person_deals")
        return [d for d in self.deals if d.person_id == person_id]

    def list_deal_notes(self, deal_id: int) -> List[Note]:
        self._call("list_deal_notes")
        return self.notes_for(deal_id)

    def create_person(self, name: str, owner_id: int) -> int:
        self._call("create_person")
        return self.seed_person(name).id

    def create_deal(self, title: str, owner_id: int, person_id: int, custom_fields: Dict[str, Any]) -> int:
        self._call("create_deal")
        deal = Deal(id=self._new_id(), title=title, person_id=person_id)
        self.deals.append(deal)
        self.deal_custom_fields[deal.id] = dict(custom_fields)
        return deal.id

    def add_note(self, deal_id: int, content: str) -> int:
        self._call("add_note")
        note = Note(id=self._new_id(), content=content, deal_id=deal_id)
        self.notes.append(note)
        return note.id
