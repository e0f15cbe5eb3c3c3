"""OpenClaw (`<agent_dir>/auth-profiles.json`) のアダプタ。

auth-profiles.json は複数プロバイダのプロファイルストア:

```json
{
  "version": 1,
  "profiles": {"openai-codex:rotater:work": {"type": "oauth", "provider": "openai-codex", ...}},
  "order": {"openai-codex": ["openai-codex:rotater:work", "openai-codex:manual"]}
}
```

- 有効な認証情報 = `order["openai-codex"]` の先頭から見て最初に使えるエントリ
  - oauth: access と refresh が必要
  - token: token が必要。expires があれば未失効であること
- clear はプロファイルを消さない。order をログイン待ちの番兵IDだけにし、
  その時点で存在したIDを別キーに覚えておく。後から現れた「覚えていないID」を
  新しくログインした認証情報とみなす。

NOTE:
- この判定は近似。番兵を置いた後に外部ツールが複数のプロファイルを追加すると
  ID順で最初のものを拾う。
"""

from __future__ import annotations

from typing import Any

from codex_switcher.adapter import Adapter
from codex_switcher.fsutil import read_json_object, write_json_atomic
from codex_switcher.identity import normalize_identity
from codex_switcher.models import PROVIDER, TOOL_OPENCLAW, Credential, ToolPaths, as_int, as_str, now_ms

PROFILE_ID_PREFIX = f"{PROVIDER}:rotater:"
PENDING_LOGIN_SENTINEL_ID = f"{PROFILE_ID_PREFIX}__pending_login__"
PENDING_KNOWN_IDS_KEY = "codex_switcher_pending_known_profile_ids"
ACTIVE_PROFILE_NAME = "__active__"
CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"


def rotater_profile_id(name: str) -> str:
    return PROFILE_ID_PREFIX + name


class OpenClawAdapter(Adapter):
    tool = TOOL_OPENCLAW

    def read_active_credential(self, paths: ToolPaths) -> Credential | None:
        store = read_json_object(paths.active_path)
        if store is None:
            return None

        profiles = _profiles(store)
        now = now_ms()
        pending = False
        for profile_id in active_order(store):
            if profile_id == PENDING_LOGIN_SENTINEL_ID:
                pending = True
                continue
            entry = profiles.get(profile_id)
            if entry is None or not _is_codex(entry):
                continue
            cred = _entry_credential(entry, now)
            if cred is not None:
                return cred

        if not pending:
            return None

        # ログイン待ち: clear 前に無かった ID だけを新しいログインとして扱う
        known = _pending_known_ids(store)
        for profile_id in sorted(profiles):
            if profile_id == PENDING_LOGIN_SENTINEL_ID or profile_id in known:
                continue
            entry = profiles[profile_id]
            if not _is_codex(entry):
                continue
            cred = _entry_credential(entry, now)
            if cred is not None:
                return cred
        return None

    def write_active_credential(self, paths: ToolPaths, cred: Credential) -> None:
        self.write_profile_credential(paths, ACTIVE_PROFILE_NAME, cred)

    def write_profile_credential(self, paths: ToolPaths, profile: str, cred: Credential) -> None:
        """`openai-codex:rotater:<profile>` を upsert して order の先頭に置く。"""
        self._require_usable(cred)

        store = read_json_object(paths.active_path) or {}
        profiles = _section(store, "profiles")
        order = _section(store, "order")

        profile_id = rotater_profile_id(profile)
        entry: dict[str, Any] = {
            "type": "oauth",
            "provider": PROVIDER,
            "access": cred.access,
            "refresh": cred.refresh,
        }
        if cred.expires:
            entry["expires"] = cred.expires
        if cred.account_id:
            entry["accountId"] = cred.account_id
        entry["clientId"] = CLIENT_ID
        if cred.email:
            entry["email"] = cred.email
        profiles[profile_id] = entry

        rest = [
            i for i in _order(store).get(PROVIDER, [])
            if i not in (profile_id, PENDING_LOGIN_SENTINEL_ID)
        ]
        order[PROVIDER] = _dedupe([profile_id, *rest])
        store.pop(PENDING_KNOWN_IDS_KEY, None)

        _write_store(paths, store)

    def clear_active_credential(self, paths: ToolPaths) -> None:
        store = read_json_object(paths.active_path) or {}
        order = _section(store, "order")

        order[PROVIDER] = [PENDING_LOGIN_SENTINEL_ID]
        store[PENDING_KNOWN_IDS_KEY] = sorted(
            profile_id for profile_id, entry in _profiles(store).items() if _is_codex(entry)
        )
        _write_store(paths, store)

    def remove_profile_credential(self, paths: ToolPaths, profile: str) -> None:
        store = read_json_object(paths.active_path)
        if store is None:
            return
        profiles = _section(store, "profiles")
        order = _section(store, "order")

        target = rotater_profile_id(profile)
        profiles.pop(target, None)
        if isinstance(order.get(PROVIDER), list):
            remaining = [i for i in order[PROVIDER] if i != target]
            if remaining:
                order[PROVIDER] = remaining
            else:
                del order[PROVIDER]

        _write_store(paths, store)


def active_order(store: dict[str, Any]) -> list[str]:
    listed = _order(store).get(PROVIDER, [])
    if listed:
        return _dedupe(listed)
    return sorted(i for i, entry in _profiles(store).items() if _is_codex(entry))


def _profiles(store: dict[str, Any]) -> dict[str, dict[str, Any]]:
    raw = store.get("profiles")
    if not isinstance(raw, dict):
        return {}
    return {k: v for k, v in raw.items() if isinstance(v, dict)}


def _order(store: dict[str, Any]) -> dict[str, list[str]]:
    raw = store.get("order")
    if not isinstance(raw, dict):
        return {}
    out: dict[str, list[str]] = {}
    for provider, ids in raw.items():
        if not isinstance(ids, list):
            continue
        out[provider] = [i for i in ids if isinstance(i, str) and i.strip()]
    return out


def _pending_known_ids(store: dict[str, Any]) -> set[str]:
    raw = store.get(PENDING_KNOWN_IDS_KEY)
    if not isinstance(raw, list):
        return set()
    return {i for i in raw if isinstance(i, str) and i.strip()}


def _is_codex(entry: dict[str, Any]) -> bool:
    return as_str(entry.get("provider")).strip().lower() == PROVIDER


def _entry_credential(entry: dict[str, Any], now: int) -> Credential | None:
    kind = entry.get("type")
    expires = as_int(entry.get("expires"))
    if kind == "oauth":
        access = as_str(entry.get("access"))
        refresh = as_str(entry.get("refresh"))
        if not access or not refresh:
            return None
        return normalize_identity(
            Credential(
                provider=PROVIDER,
                access=access,
                refresh=refresh,
                expires=expires,
                account_id=as_str(entry.get("accountId")),
                email=as_str(entry.get("email")),
            )
        )
    if kind == "token":
        token = as_str(entry.get("token"))
        if not token:
            return None
        if expires > 0 and now >= expires:
            return None
        return normalize_identity(
            Credential(
                provider=PROVIDER,
                access=token,
                expires=expires,
                email=as_str(entry.get("email")),
            )
        )
    return None


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _section(store: dict[str, Any], key: str) -> dict[str, Any]:
    """store[key] を（無ければ作って）返す。中の未知の値はそのまま残す。"""
    section = store.get(key)
    if not isinstance(section, dict):
        section = {}
        store[key] = section
    return section


def _write_store(paths: ToolPaths, store: dict[str, Any]) -> None:
    if not as_int(store.get("version")):
        store["version"] = 1
    _section(store, "profiles")
    if not store.get("order"):
        store.pop("order", None)
    write_json_atomic(paths.active_path, store)
