"""paths のテスト。"""

from pathlib import Path

import pytest

from codex_switcher.errors import UserError
from codex_switcher.paths import first_non_empty, resolve_path_with_home, resolve_tool_paths


def test_codex_home_env(homes: dict[str, Path]) -> None:
    p = resolve_tool_paths("codex")
    assert p.root_dir == homes["codex"]
    assert p.active_path == homes["codex"] / "auth.json"
    assert p.profile_dir == homes["codex"] / "profiles"
    assert p.state_path.name == ".rotater-state.json"
    assert p.lock_path.name == ".rotater.lock"


def test_codex_default_under_home(homes: dict[str, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CODEX_HOME")
    assert resolve_tool_paths("codex").root_dir == homes["home"] / ".codex"


def test_opencode_uses_xdg_data_home(homes: dict[str, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_tool_paths("opencode").active_path == homes["opencode"] / "auth.json"

    monkeypatch.delenv("XDG_DATA_HOME")
    assert resolve_tool_paths("opencode").root_dir == homes["home"] / ".local" / "share" / "opencode"


def test_openclaw_precedence(homes: dict[str, Path], monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    assert resolve_tool_paths("openclaw").active_path == homes["openclaw"] / "auth-profiles.json"

    monkeypatch.delenv("OPENCLAW_AGENT_DIR")
    monkeypatch.setenv("PI_CODING_AGENT_DIR", str(tmp_path / "pi"))
    assert resolve_tool_paths("openclaw").root_dir == tmp_path / "pi"

    monkeypatch.delenv("PI_CODING_AGENT_DIR")
    monkeypatch.setenv("OPENCLAW_STATE_DIR", "~/state")
    monkeypatch.setenv("OPENCLAW_HOME", str(tmp_path / "oc"))
    assert resolve_tool_paths("openclaw").root_dir == tmp_path / "oc" / "state" / "agents" / "main" / "agent"

    monkeypatch.delenv("OPENCLAW_STATE_DIR")
    assert resolve_tool_paths("openclaw").root_dir == tmp_path / "oc" / ".openclaw" / "agents" / "main" / "agent"


def test_unknown_tool() -> None:
    with pytest.raises(UserError):
        resolve_tool_paths("vim")


def test_helpers() -> None:
    assert resolve_path_with_home("~/x/../y", "/h") == "/h/y"
    assert resolve_path_with_home("~", "/h") == "/h"
    assert first_non_empty("", "  ", "a", "b") == "a"
    assert first_non_empty() == ""
