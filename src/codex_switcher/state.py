"""ツールごとの切替状態（`<root>/profiles/.rotater-state.json`）。

- activeProfile: 現在のプロファイル
- previousProfile: 直前の切替で退避したプロファイル（ベストエフォート）
- pendingCreateProfile/Since: `--create` で準備中（外部ログイン待ち）のプロファイル
"""

from __future__ import annotations

import json
import time
from dataclasses import replace

from codex_switcher.errors import IOFailure
from codex_switcher.fsutil import read_json, write_json_atomic
from codex_switcher.models import StateFile, ToolPaths


def utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def load_state(paths: ToolPaths) -> StateFile:
    try:
        raw = read_json(paths.state_path)
    except FileNotFoundError:
        return StateFile()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise IOFailure(f"state file {paths.state_path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise IOFailure(f"state file {paths.state_path} is not a JSON object")
    return StateFile.from_raw(raw)


def save_state(paths: ToolPaths, state: StateFile) -> None:
    st = replace(state, version=1)
    if not st.last_switch_at:
        st.last_switch_at = utc_now_iso()
    write_json_atomic(paths.state_path, st.to_raw())
