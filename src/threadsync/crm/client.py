from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import requests

from ..errors import GatewayError
from .models import Deal, Note, Person


class RecordGateway(Protocol):
    def deal_field_keys(self, channel_field_id: int, company_field_id: int) -> Tuple[Optional[str], Optional[str]]: ...

    def search_persons(self, term: str) -> List[Person]: ...

    def list_person_deals(self, person_id: int) -> List[Deal]: ...

    def list_deal_notes(self, deal_id: int) -> List[Note]: ...

    def create_person(self, name: str, owner_id: int) -> int: ...

    def create_deal(self, title: str, owner_id: int, person_id: int, custom_fields: Dict[str, Any]) -> int: ...

    def add_note(self, deal_id: int, content: str) -> int: ...


@dataclass
class PipedriveClient:
    domain: str
    api_token: str
    timeout_s: int = 30
    page_size: int = 100
    session: requests.Session = field(default_factory=requests.Session)

    @property
    def base_url(self) -> str:
        return f"{self.domain.rstrip('/')}/api/v1"

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        operation = f"{method} {path}"
        query = dict(params or {})
        query["api_token"] = self.api_token
        try:
            resp = self.session.request(
                method,
                f"{self.base_url}{path}",
                params=query,
                json=body,
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise GatewayError(operation, str(exc)) from exc
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        ok = 200 <= resp.status_code < 300
        if not ok or not isinstance(payload, dict) or payload.get("success") is False:
            message = None
            if isinstance(payload, dict):
                message = payload.get("error")
            raise GatewayError(operation, message or f"HTTP {resp.status_code}", resp.status_code)
        return payload

    def _get_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Follow start/limit pagination until more_items_in_collection is false.
        """
        items: List[Dict[str, Any]] = []
        start = 0
        while True:
            page_params = dict(params or {})
            page_params.update({"start": start, "limit": self.page_size})
            resp = self._request("GET", path, params=page_params)
            page = resp.get("data") or []
            items.extend(page)
            pagination = (resp.get("additional_data") or {}).get("pagination") or {}
            if not pagination.get("more_items_in_collection") or not page:
                break
            next_start = pagination.get("next_start")
            start = int(next_start) if next_start is not None else start + len(page)
        return items

    def deal_field_keys(self, channel_field_id: int, company_field_id: int) -> Tuple[Optional[str], Optional[str]]:
        """Resolve numeric custom deal field ids to the hash keys used when writing deals."""
        resp = self._request("GET", "/dealFields")
        by_id = {f.get("id"): f.get("key") for f in (resp.get("data") or [])}
        return by_id.get(channel_field_id), by_id.get(company_field_id)

    def search_persons(self, term: str) -> List[Person]:
        resp = self._request(
            "GET",
            "/persons/search",
            params={"term": term, "fields": "name", "exact_match": "false"},
        )
        items = (resp.get("data") or {}).get("items") or []
        return [Person.model_validate(i["item"]) for i in items if i.get("item")]

    def list_person_deals(self, person_id: int) -> List[Deal]:
        data = self._get_all(f"/persons/{person_id}/deals", params={"status": "all_not_deleted"})
        return [Deal.model_validate(d) for d in data]

    def list_deal_notes(self, deal_id: int) -> List[Note]:
        return [Note.model_validate(n) for n in self._get_all("/notes", params={"deal_id": deal_id})]

    def create_person(self, name: str, owner_id: int) -> int:
        resp = self._request("POST", "/persons", body={"name": name, "owner_id": owner_id})
        return int(resp["data"]["id"])

    def create_deal(self, title: str, owner_id: int, person_id: int, custom_fields: Dict[str, Any]) -> int:
        body: Dict[str, Any] = {"title": title, "user_id": owner_id, "person_id": person_id}
        body.update(custom_fields)
        resp = self._request("POST", "/deals", body=body)
        return int(resp["data"]["id"])

    def add_note(self, deal_id: int, content: str) -> int:
        resp = self._request("POST", "/notes", body={"deal_id": deal_id, "content": content})
        return int(resp["data"]["id"])
