"""state のテスト。"""

import json
from pathlib import Path

import pytest

from codex_switcher.errors import IOFailure
from codex_switcher.models import StateFile
from codex_switcher.paths import resolve_tool_paths
from codex_switcher.state import load_state, save_state


def test_missing_state_is_empty(homes: dict[str, Path]) -> None:
    assert load_state(resolve_tool_paths("codex")) == StateFile()


def test_state_roundtrip_uses_camel_case(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    save_state(paths, StateFile(version=7, active_profile="work", previous_profile="home"))

    raw = json.loads(paths.state_path.read_text(encoding="utf-8"))
    assert raw["version"] == 1
    assert raw["activeProfile"] == "work"
    assert raw["previousProfile"] == "home"
    assert raw["lastSwitchAt"].endswith("Z")
    assert "pendingCreateProfile" not in raw

    st = load_state(paths)
    assert st.active_profile == "work"


def test_corrupt_state_is_io_failure(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    paths.state_path.parent.mkdir(parents=True)
    paths.state_path.write_text("{oops", encoding="utf-8")
    with pytest.raises(IOFailure):
        load_state(paths)


def test_non_utf8_state_is_io_failure(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    paths.state_path.parent.mkdir(parents=True)
    paths.state_path.write_bytes(b"\xff\xfe{")
    with pytest.raises(IOFailure):
        load_state(paths)
