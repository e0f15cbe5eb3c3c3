"""ツールごとの認証ファイル/プロファイル置き場の解決。

優先順位:
- codex: `CODEX_HOME` → `~/.codex`
- opencode: `$XDG_DATA_HOME/opencode` → `~/.local/share/opencode`
- openclaw: `OPENCLAW_AGENT_DIR` → `PI_CODING_AGENT_DIR`
  → `<state>/agents/main/agent`
  - state: `OPENCLAW_STATE_DIR` → `CLAWDBOT_STATE_DIR` → `<home>/.openclaw`
  - home: `OPENCLAW_HOME` → `HOME` → `USERPROFILE` → OSのホーム

NOTE:
- 純粋関数。ディレクトリは作らない。
- 環境変数は呼び出しのたびに読み直す（キャッシュしない）。
"""

from __future__ import annotations

import os
from pathlib import Path

from codex_switcher.errors import IOFailure, UserError
from codex_switcher.models import TOOL_CODEX, TOOL_OPENCLAW, TOOL_OPENCODE, ToolPaths

STATE_FILENAME = ".rotater-state.json"
LOCK_FILENAME = ".rotater.lock"


def resolve_tool_paths(tool: str) -> ToolPaths:
    home = _user_home()

    if tool == TOOL_CODEX:
        root = resolve_path_with_home(
            first_non_empty(os.environ.get("CODEX_HOME", ""), os.path.join(home, ".codex")),
            home,
        )
        return _paths(tool, root, "auth.json")

    if tool == TOOL_OPENCODE:
        xdg_data = first_non_empty(
            os.environ.get("XDG_DATA_HOME", ""),
            os.path.join(home, ".local", "share"),
        )
        root = os.path.join(resolve_path_with_home(xdg_data, home), "opencode")
        return _paths(tool, root, "auth.json")

    if tool == TOOL_OPENCLAW:
        openclaw_home = _openclaw_home(home)
        state_dir = _openclaw_state_dir(openclaw_home)
        agent_dir = first_non_empty(
            os.environ.get("OPENCLAW_AGENT_DIR", ""),
            os.environ.get("PI_CODING_AGENT_DIR", ""),
            os.path.join(state_dir, "agents", "main", "agent"),
        )
        root = resolve_path_with_home(agent_dir, openclaw_home)
        return _paths(tool, root, "auth-profiles.json")

    raise UserError(f"unsupported tool {tool!r}")


def resolve_path_with_home(raw: str, home: str) -> str:
    """先頭の `~` を home に展開して正規化する。"""
    if raw.startswith("~/") or raw.startswith("~\\"):
        return os.path.normpath(os.path.join(home, raw[2:]))
    if raw == "~":
        return home
    return os.path.normpath(raw)


def first_non_empty(*values: str) -> str:
    for v in values:
        s = (v or "").strip()
        if s:
            return s
    return ""


def _paths(tool: str, root: str, active_name: str) -> ToolPaths:
    root_dir = Path(root)
    profile_dir = root_dir / "profiles"
    return ToolPaths(
        tool=tool,
        root_dir=root_dir,
        active_path=root_dir / active_name,
        profile_dir=profile_dir,
        state_path=profile_dir / STATE_FILENAME,
        lock_path=profile_dir / LOCK_FILENAME,
    )


def _user_home() -> str:
    try:
        return str(Path.home())
    except (RuntimeError, KeyError) as e:
        raise IOFailure(f"cannot determine home directory: {e}") from e


def _openclaw_home(fallback_home: str) -> str:
    return resolve_path_with_home(
        first_non_empty(
            os.environ.get("OPENCLAW_HOME", ""),
            os.environ.get("HOME", ""),
            os.environ.get("USERPROFILE", ""),
            fallback_home,
        ),
        fallback_home,
    )


def _openclaw_state_dir(openclaw_home: str) -> str:
    override = first_non_empty(
        os.environ.get("OPENCLAW_STATE_DIR", ""),
        os.environ.get("CLAWDBOT_STATE_DIR", ""),
    )
    if override:
        return resolve_path_with_home(override, openclaw_home)
    return os.path.join(openclaw_home, ".openclaw")
