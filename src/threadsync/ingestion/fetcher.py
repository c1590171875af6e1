from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from ..config import DEFAULT_USER_AGENT
from ..errors import FetchError, SessionExpiredError
from ..observer import NullObserver, ReconcileObserver
from .session import SessionCookies

LOGIN_PATH = "/login/"


@dataclass
class ThreadFetcher:
    cookies: SessionCookies
    user_agent: str = DEFAULT_USER_AGENT
    timeout_s: int = 30
    session: requests.Session = field(default_factory=requests.Session)
    observer: ReconcileObserver = field(default_factory=NullObserver)

    def _headers(self) -> Dict[str, str]:
        return {
            "Cookie": self.cookies.cookie_string,
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }

    def fetch(self, url: str) -> str:
        """
        GET the thread page and return its HTML.
        A redirect onto the login page means the stored session is no longer valid.
        """
        if self.cookies.is_stale():
            self.observer.session_stale(self.cookies.expires or "")
        try:
            resp = self.session.get(url, headers=self._headers(), timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise FetchError(f"Failed to fetch thread {url}: {exc}") from exc
        final_url: Optional[str] = getattr(resp, "url", None)
        if final_url and LOGIN_PATH in final_url:
            raise SessionExpiredError("SS.LV session expired - cookies are stale")
        if not 200 <= resp.status_code < 300:
            raise FetchError(f"Thread fetch returned HTTP {resp.status_code} for {url}")
        html = resp.text
        self.observer.page_loaded(url, len(html))
        return html
