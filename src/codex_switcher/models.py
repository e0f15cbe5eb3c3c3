"""codex-switcher のデータモデル。

- Credential: ツール非依存の正規化済み認証情報（ディスクには直接書かない）
- ToolPaths: ツールごとのパス一式（呼び出しごとに解決し、キャッシュしない）
- ProfileFile / StateFile: `<root>/profiles/` 配下の永続ファイル
- *Result: 呼び出し元向けの読み取り専用ビュー
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

TOOL_CODEX = "codex"
TOOL_OPENCODE = "opencode"
TOOL_OPENCLAW = "openclaw"

ALL_TOOLS = (TOOL_CODEX, TOOL_OPENCODE, TOOL_OPENCLAW)

PROVIDER = "openai-codex"

STATUS_SWITCHED = "switched"
STATUS_ALREADY_ACTIVE = "already_active"
STATUS_PREPARED = "prepared"
STATUS_BLOCKED = "blocked"
STATUS_SKIPPED_MISSING = "skipped_missing"

PARTIAL_STATUSES = frozenset({STATUS_BLOCKED, STATUS_SKIPPED_MISSING})


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Credential:
    provider: str = PROVIDER
    access: str = ""
    refresh: str = ""
    expires: int = 0  # epoch ms, 0 = never
    account_id: str = ""
    id_token: str = ""
    email: str = ""
    updated_at: int = 0

    @property
    def usable(self) -> bool:
        """Both tokens present, so the credential can be switched to."""
        return bool(self.access) and bool(self.refresh)

    def is_expired(self, now: int | None = None) -> bool:
        if self.expires <= 0:
            return False
        return (now_ms() if now is None else now) >= self.expires

    def near_expiry(self, threshold_ms: int, now: int | None = None) -> bool:
        if self.expires <= 0:
            return False
        return (now_ms() if now is None else now) + threshold_ms >= self.expires

    def same_identity(self, other: Credential) -> bool:
        """Equality ignoring updated_at."""
        a = asdict(self)
        b = asdict(other)
        a.pop("updated_at")
        b.pop("updated_at")
        return a == b


@dataclass(frozen=True)
class ToolPaths:
    tool: str
    root_dir: Path
    active_path: Path
    profile_dir: Path
    state_path: Path
    lock_path: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "tool": self.tool,
            "rootDir": str(self.root_dir),
            "activePath": str(self.active_path),
            "profileDir": str(self.profile_dir),
            "statePath": str(self.state_path),
            "lockPath": str(self.lock_path),
        }


@dataclass
class ProfileFile:
    version: int = 1
    provider: str = PROVIDER
    access: str = ""
    refresh: str = ""
    expires: int = 0
    account_id: str = ""
    id_token: str = ""
    email: str = ""
    updated_at: int = 0

    @classmethod
    def from_credential(cls, cred: Credential, *, updated_at: int) -> ProfileFile:
        return cls(
            version=1,
            provider=PROVIDER,
            access=cred.access,
            refresh=cred.refresh,
            expires=cred.expires,
            account_id=cred.account_id,
            id_token=cred.id_token,
            email=cred.email,
            updated_at=updated_at,
        )

    @classmethod
    def from_raw(cls, raw: dict) -> ProfileFile:
        return cls(
            version=as_int(raw.get("version")) or 1,
            provider=as_str(raw.get("provider")),
            access=as_str(raw.get("access")),
            refresh=as_str(raw.get("refresh")),
            expires=as_int(raw.get("expires")),
            account_id=as_str(raw.get("accountId")),
            id_token=as_str(raw.get("idToken")),
            email=as_str(raw.get("email")),
            updated_at=as_int(raw.get("updatedAt")),
        )

    def to_raw(self) -> dict:
        raw: dict = {
            "version": self.version,
            "provider": self.provider,
            "access": self.access,
            "refresh": self.refresh,
        }
        # 空の項目は書かない
        optional = {
            "expires": self.expires,
            "accountId": self.account_id,
            "idToken": self.id_token,
            "email": self.email,
            "updatedAt": self.updated_at,
        }
        raw.update({k: v for k, v in optional.items() if v})
        return raw

    def to_credential(self) -> Credential:
        return Credential(
            provider=self.provider,
            access=self.access,
            refresh=self.refresh,
            expires=self.expires,
            account_id=self.account_id,
            id_token=self.id_token,
            email=self.email,
            updated_at=self.updated_at,
        )


@dataclass
class StateFile:
    version: int = 1
    active_profile: str = ""
    previous_profile: str = ""
    last_switch_at: str = ""
    pending_create_profile: str = ""
    pending_create_since: str = ""

    @classmethod
    def from_raw(cls, raw: dict) -> StateFile:
        return cls(
            version=as_int(raw.get("version")) or 1,
            active_profile=as_str(raw.get("activeProfile")),
            previous_profile=as_str(raw.get("previousProfile")),
            last_switch_at=as_str(raw.get("lastSwitchAt")),
            pending_create_profile=as_str(raw.get("pendingCreateProfile")),
            pending_create_since=as_str(raw.get("pendingCreateSince")),
        )

    def to_raw(self) -> dict:
        raw: dict = {"version": self.version}
        optional = {
            "activeProfile": self.active_profile,
            "previousProfile": self.previous_profile,
            "lastSwitchAt": self.last_switch_at,
            "pendingCreateProfile": self.pending_create_profile,
            "pendingCreateSince": self.pending_create_since,
        }
        raw.update({k: v for k, v in optional.items() if v})
        return raw


@dataclass
class InspectToolResult:
    tool: str
    paths: ToolPaths
    has_active: bool = False
    capturable: bool = False
    account_id: str = ""
    email: str = ""
    expires: int = 0
    store_mode: str = ""
    switch_blocked: bool = False
    switch_block_reason: str = ""
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        out: dict = {
            "tool": self.tool,
            "paths": self.paths.to_dict(),
            "hasActive": self.has_active,
            "capturable": self.capturable,
        }
        optional = {
            "accountId": self.account_id,
            "email": self.email,
            "expires": self.expires,
            "storeMode": self.store_mode,
            "switchBlocked": self.switch_blocked,
            "switchBlockReason": self.switch_block_reason,
            "warnings": self.warnings,
        }
        out.update({k: v for k, v in optional.items() if v})
        return out


@dataclass
class StatusToolResult:
    tool: str
    paths: ToolPaths
    has_active: bool = False
    store_mode: str = ""
    switch_blocked: bool = False
    switch_block_reason: str = ""
    active_profile: str = ""
    previous_profile: str = ""
    pending_create_profile: str = ""
    pending_create_since: str = ""
    profiles: list[str] = field(default_factory=list)

    @property
    def profile_count(self) -> int:
        return len(self.profiles)

    def to_dict(self) -> dict:
        out: dict = {
            "tool": self.tool,
            "paths": self.paths.to_dict(),
            "hasActive": self.has_active,
            "profileCount": self.profile_count,
        }
        optional = {
            "storeMode": self.store_mode,
            "switchBlocked": self.switch_blocked,
            "switchBlockReason": self.switch_block_reason,
            "activeProfile": self.active_profile,
            "previousProfile": self.previous_profile,
            "pendingCreateProfile": self.pending_create_profile,
            "pendingCreateSince": self.pending_create_since,
            "profiles": self.profiles,
        }
        out.update({k: v for k, v in optional.items() if v})
        return out


@dataclass
class SwitchOptions:
    dry_run: bool = False
    create_missing: bool = False


@dataclass
class SwitchResult:
    tool: str
    to_profile: str
    status: str
    from_profile: str = ""
    snapshot_profile: str = ""
    changed: bool = False
    warning: str = ""
    pending_create: bool = False

    def to_dict(self) -> dict:
        out: dict = {
            "tool": self.tool,
            "toProfile": self.to_profile,
            "changed": self.changed,
            "status": self.status,
        }
        optional = {
            "fromProfile": self.from_profile,
            "snapshotProfile": self.snapshot_profile,
            "warning": self.warning,
            "pendingCreate": self.pending_create,
        }
        out.update({k: v for k, v in optional.items() if v})
        return out


def as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def as_int(value: object) -> int:
    """JSON の数値/数値文字列を int にする。それ以外は 0。"""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0

