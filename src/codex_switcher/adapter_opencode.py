"""OpenCode (`$XDG_DATA_HOME/opencode/auth.json`) のアダプタ。

`openai` キーだけを扱う。他のプロバイダのキーはそのまま残す。

```json
{"openai": {"type": "oauth", "access": "...", "refresh": "...", "expires": 0, "accountId": "..."}}
```
"""

from __future__ import annotations

from codex_switcher.adapter import Adapter
from codex_switcher.fsutil import read_json_object, write_json_atomic
from codex_switcher.models import PROVIDER, TOOL_OPENCODE, Credential, ToolPaths, as_int, as_str

OPENAI_KEY = "openai"


class OpenCodeAdapter(Adapter):
    tool = TOOL_OPENCODE

    def read_active_credential(self, paths: ToolPaths) -> Credential | None:
        root = read_json_object(paths.active_path)
        if root is None:
            return None
        entry = root.get(OPENAI_KEY)
        if not isinstance(entry, dict) or entry.get("type") != "oauth":
            return None

        access = as_str(entry.get("access"))
        refresh = as_str(entry.get("refresh"))
        if not access or not refresh:
            return None

        return Credential(
            provider=PROVIDER,
            access=access,
            refresh=refresh,
            expires=as_int(entry.get("expires")),
            account_id=as_str(entry.get("accountId")),
        )

    def write_active_credential(self, paths: ToolPaths, cred: Credential) -> None:
        self._require_usable(cred)

        root = read_json_object(paths.active_path) or {}
        entry: dict = {
            "type": "oauth",
            "access": cred.access,
            "refresh": cred.refresh,
        }
        if cred.expires > 0:
            entry["expires"] = cred.expires
        if cred.account_id:
            entry["accountId"] = cred.account_id
        root[OPENAI_KEY] = entry
        write_json_atomic(paths.active_path, root)

    def clear_active_credential(self, paths: ToolPaths) -> None:
        root = read_json_object(paths.active_path) or {}
        root.pop(OPENAI_KEY, None)
        write_json_atomic(paths.active_path, root)
