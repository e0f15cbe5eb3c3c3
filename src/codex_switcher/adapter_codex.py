"""Codex CLI (`$CODEX_HOME/auth.json`) のアダプタ。

auth.json:

```json
{
  "auth_mode": "chatgpt",
  "tokens": {"access_token": "...", "refresh_token": "...", "account_id": "...", "id_token": "..."},
  "last_refresh": "2025-01-01T00:00:00Z"
}
```

同じディレクトリの config.toml の `cli_auth_credentials_store` が
keyring / ephemeral ならファイルを書き換えても意味がないので切替をブロックする。
auto の場合はファイルにトークンが無ければ keyring とみなしてブロック。
"""

from __future__ import annotations

import logging
import time

try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib  # type: ignore[no-redef]

from codex_switcher.adapter import Adapter
from codex_switcher.fsutil import read_json_object, write_json_atomic
from codex_switcher.identity import extract_account_id, extract_email, parse_jwt_claims
from codex_switcher.models import PROVIDER, TOOL_CODEX, Credential, InspectToolResult, ToolPaths, as_str

log = logging.getLogger(__name__)

_TOKEN_KEYS = ("access_token", "refresh_token", "account_id", "id_token")


class CodexAdapter(Adapter):
    tool = TOOL_CODEX

    def store_mode(self, paths: ToolPaths) -> tuple[str, bool, str]:
        """(mode, blocked, reason) を返す。"""
        mode = "file"
        config_path = paths.root_dir / "config.toml"
        try:
            raw = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return mode, False, ""
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            log.warning("cannot read %s: %s", config_path, e)
            return mode, False, ""

        configured = raw.get("cli_auth_credentials_store")
        if isinstance(configured, str) and configured.strip():
            mode = configured.strip().lower()

        if mode == "keyring":
            return mode, True, "codex is configured for keyring storage"
        if mode == "ephemeral":
            return mode, True, "codex is configured for ephemeral storage"
        if mode == "auto":
            cred = self.read_active_credential(paths)
            if cred is None or not cred.access:
                return mode, True, "codex auto mode appears keyring-backed (no file tokens found)"
        return mode, False, ""

    def inspect(self, paths: ToolPaths) -> InspectToolResult:
        out = super().inspect(paths)
        out.store_mode, out.switch_blocked, out.switch_block_reason = self.store_mode(paths)
        return out

    def read_active_credential(self, paths: ToolPaths) -> Credential | None:
        data = read_json_object(paths.active_path)
        if data is None:
            return None
        tokens = data.get("tokens")
        if not isinstance(tokens, dict):
            return None

        access = as_str(tokens.get("access_token"))
        refresh = as_str(tokens.get("refresh_token"))
        if not access or not refresh:
            return None

        cred = Credential(
            provider=PROVIDER,
            access=access,
            refresh=refresh,
            account_id=as_str(tokens.get("account_id")),
            id_token=as_str(tokens.get("id_token")),
        )
        if cred.id_token:
            claims = parse_jwt_claims(cred.id_token)
            cred.email = extract_email(claims)
            if not cred.account_id:
                cred.account_id = extract_account_id(claims)
        return cred

    def write_active_credential(self, paths: ToolPaths, cred: Credential) -> None:
        self._require_usable(cred)

        data = read_json_object(paths.active_path) or {}
        tokens = data.get("tokens")
        if not isinstance(tokens, dict):
            tokens = {}

        tokens["access_token"] = cred.access
        tokens["refresh_token"] = cred.refresh
        _set_or_drop(tokens, "account_id", cred.account_id)
        _set_or_drop(tokens, "id_token", cred.id_token)

        data["auth_mode"] = "chatgpt"
        data["tokens"] = tokens
        data["last_refresh"] = _utc_now()
        write_json_atomic(paths.active_path, data)

    def clear_active_credential(self, paths: ToolPaths) -> None:
        data = read_json_object(paths.active_path) or {}
        tokens = data.get("tokens")
        if not isinstance(tokens, dict):
            tokens = {}
        for key in _TOKEN_KEYS:
            tokens.pop(key, None)

        data["auth_mode"] = "chatgpt"
        data["tokens"] = tokens
        data["last_refresh"] = _utc_now()
        write_json_atomic(paths.active_path, data)


def _set_or_drop(d: dict, key: str, value: str) -> None:
    if value:
        d[key] = value
    else:
        d.pop(key, None)


def _utc_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
