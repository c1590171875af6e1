from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigurationError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class SenderConfig:
    channel_option_id: int
    company_option_id: int
    deal_title_prefix: str


@dataclass(frozen=True)
class PipedriveSettings:
    domain: str
    api_token: str
    deal_owner_user_id: int
    source_channel_field_id: int
    source_company_field_id: int
    timeout_s: int = 30


@dataclass(frozen=True)
class ThreadSourceSettings:
    cookies_file: Path = Path("ss-lv-cookies.json")
    user_agent: str = DEFAULT_USER_AGENT
    timeout_s: int = 30


@dataclass(frozen=True)
class AppConfig:
    pipedrive: PipedriveSettings
    source: ThreadSourceSettings
    senders: Mapping[str, SenderConfig] = field(default_factory=dict)

    def sender(self, email: str) -> SenderConfig:
        key = (email or "").strip().lower()
        cfg = self.senders.get(key)
        if cfg is None:
            raise ConfigurationError(f"Unsupported sender: {key or '<empty>'}")
        return cfg


def _load_yaml(path: Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {p}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse YAML at {p}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config at {p} must be a mapping at the top level")
    return data


def _require_int(section: Dict[str, Any], key: str, where: str) -> int:
    value = section.get(key)
    if value is None:
        raise ConfigurationError(f"Missing {where}.{key}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{where}.{key} must be an integer, got {value!r}") from exc


def _parse_senders(raw: Dict[str, Any]) -> Dict[str, SenderConfig]:
    senders: Dict[str, SenderConfig] = {}
    for email, spec in (raw or {}).items():
        where = f"senders[{email}]"
        if not isinstance(spec, dict):
            raise ConfigurationError(f"{where} must be a mapping")
        prefix = str(spec.get("deal_title_prefix") or "").strip()
        if not prefix:
            raise ConfigurationError(f"Missing {where}.deal_title_prefix")
        senders[str(email).strip().lower()] = SenderConfig(
            channel_option_id=_require_int(spec, "source_channel_option_id", where),
            company_option_id=_require_int(spec, "source_company_option_id", where),
            deal_title_prefix=prefix,
        )
    return senders


def build_config(raw: Dict[str, Any], env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Validate a raw config mapping into an immutable AppConfig.
    The API token is read from the environment variable named by pipedrive.api_token_env.
    """
    env = os.environ if env is None else env
    pd_raw = raw.get("pipedrive") or {}
    token_env = str(pd_raw.get("api_token_env") or "PIPEDRIVE_API_TOKEN")
    token = (env.get(token_env) or "").strip()
    if not token:
        raise ConfigurationError(f"Missing {token_env} environment variable")
    domain = str(pd_raw.get("domain") or "").rstrip("/")
    if not domain:
        raise ConfigurationError("Missing pipedrive.domain")

    pipedrive = PipedriveSettings(
        domain=domain,
        api_token=token,
        deal_owner_user_id=_require_int(pd_raw, "deal_owner_user_id", "pipedrive"),
        source_channel_field_id=_require_int(pd_raw, "source_channel_field_id", "pipedrive"),
        source_company_field_id=_require_int(pd_raw, "source_company_field_id", "pipedrive"),
        timeout_s=int(pd_raw.get("timeout_s", 30)),
    )

    src_raw = raw.get("ss_lv") or {}
    source = ThreadSourceSettings(
        cookies_file=Path(str(src_raw.get("cookies_file", "ss-lv-cookies.json"))),
        user_agent=str(src_raw.get("user_agent") or DEFAULT_USER_AGENT),
        timeout_s=int(src_raw.get("timeout_s", 30)),
    )

    senders = _parse_senders(raw.get("senders") or {})
    if not senders:
        raise ConfigurationError("Config defines no senders")
    return AppConfig(pipedrive=pipedrive, source=source, senders=senders)


def load_config(path: Path, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    return build_config(_load_yaml(path), env=env)
