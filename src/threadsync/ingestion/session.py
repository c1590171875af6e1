from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import SessionExpiredError


@dataclass(frozen=True)
class SessionCookies:
    """Cookie artifact written by the browser login step."""

    cookie_string: str
    timestamp: Optional[str] = None
    expires: Optional[str] = None

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        if not self.expires:
            return False
        try:
            expires_dt = datetime.fromisoformat(self.expires.replace("Z", "+00:00"))
        except ValueError:
            return False
        if expires_dt.tzinfo is None:
            expires_dt = expires_dt.replace(tzinfo=timezone.utc)
        return expires_dt <= (now or datetime.now(timezone.utc))


def load_session_cookies(path: Path) -> SessionCookies:
    p = Path(path)
    if not p.exists():
        raise SessionExpiredError(f"No cookies found at {p}. Authenticate first.")
    try:
        data: Dict[str, Any] = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SessionExpiredError(f"Failed to read cookies at {p}: {exc}") from exc
    cookie_string = str(data.get("cookieString") or "").strip()
    if not cookie_string:
        raise SessionExpiredError(f"Cookie file {p} has no cookieString. Authenticate again.")
    return SessionCookies(
        cookie_string=cookie_string,
        timestamp=data.get("timestamp"),
        expires=data.get("expires"),
    )
