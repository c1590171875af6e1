from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import AppConfig
from .crm.client import PipedriveClient, RecordGateway
from .ingestion.fetcher import ThreadFetcher
from .ingestion.models import Thread
from .ingestion.parser import parse_thread
from .ingestion.session import load_session_cookies
from .observer import NullObserver, ReconcileObserver
from .pipeline.reconciliation import DealFields, ReconcileResult, reconcile
from .utils.json_utils import write_json


def _iso_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


@dataclass
class SyncRun:
    thread_url: str
    sender_email: str
    contact_name: str
    thread: Thread
    result: ReconcileResult

    def summary(self) -> Dict[str, Any]:
        return {
            **self.result.as_dict(),
            "thread_url": self.thread_url,
            "sender": self.sender_email,
            "contact_name": self.contact_name,
            "message_count": len(self.thread),
            "skipped_ids": list(self.thread.skipped_ids),
            "finished_at": _iso_now(),
        }


def deal_fields(cfg: AppConfig) -> DealFields:
    return DealFields(
        channel_field_id=cfg.pipedrive.source_channel_field_id,
        company_field_id=cfg.pipedrive.source_company_field_id,
        owner_id=cfg.pipedrive.deal_owner_user_id,
    )


def run_sync(
    cfg: AppConfig,
    thread_url: str,
    sender_email: str,
    contact_name: str,
    *,
    cookies_path: Optional[Path] = None,
    fetcher: Optional[ThreadFetcher] = None,
    gateway: Optional[RecordGateway] = None,
    observer: Optional[ReconcileObserver] = None,
    summary_path: Optional[Path] = None,
) -> SyncRun:
    """
    Fetch one thread, parse it and reconcile it into Pipedrive.
    Each step runs to completion before the next; the first error aborts the run.
    """
    observer = observer or NullObserver()
    sender = cfg.sender(sender_email)

    if fetcher is None:
        cookies = load_session_cookies(cookies_path or cfg.source.cookies_file)
        fetcher = ThreadFetcher(
            cookies=cookies,
            user_agent=cfg.source.user_agent,
            timeout_s=cfg.source.timeout_s,
            observer=observer,
        )
    html = fetcher.fetch(thread_url)
    thread = parse_thread(html, observer=observer)

    if gateway is None:
        gateway = PipedriveClient(
            domain=cfg.pipedrive.domain,
            api_token=cfg.pipedrive.api_token,
            timeout_s=cfg.pipedrive.timeout_s,
        )
    result = reconcile(
        thread,
        sender,
        contact_name,
        gateway,
        thread_url=thread_url,
        fields=deal_fields(cfg),
        observer=observer,
    )

    run = SyncRun(
        thread_url=thread_url,
        sender_email=sender_email.strip().lower(),
        contact_name=contact_name,
        thread=thread,
        result=result,
    )
    if summary_path is not None:
        write_json(summary_path, run.summary())
    return run
