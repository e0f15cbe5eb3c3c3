"""profile_store のテスト。"""

import json
import stat
from pathlib import Path

import pytest
from conftest import make_cred

from codex_switcher.errors import CredentialValidationError, IOFailure, UserError
from codex_switcher.paths import resolve_tool_paths
from codex_switcher.profile_store import (
    ProfileNotFound,
    delete_profile,
    list_profiles,
    load_profile,
    profile_path,
    save_profile,
)


def test_save_load_list_delete(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    assert list_profiles(paths) == []

    p = save_profile(paths, "work", make_cred("work"))
    save_profile(paths, "home", make_cred("home"))
    assert p.name == "openai-codex.work.json"
    assert stat.S_IMODE(p.stat().st_mode) == 0o600

    raw = json.loads(p.read_text(encoding="utf-8"))
    assert raw["provider"] == "openai-codex"
    assert raw["accountId"] == "acct-work"
    assert raw["updatedAt"] > 0
    assert "idToken" not in raw

    assert list_profiles(paths) == ["home", "work"]
    assert load_profile(paths, "work").refresh == "refresh-work"

    delete_profile(paths, "work")
    delete_profile(paths, "work")
    assert list_profiles(paths) == ["home"]


def test_list_ignores_unrelated_files(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    save_profile(paths, "work", make_cred("work"))
    (paths.profile_dir / "notes.txt").write_text("x", encoding="utf-8")
    (paths.profile_dir / "openai-codex..json").write_text("{}", encoding="utf-8")
    assert list_profiles(paths) == ["work"]


def test_overwrite_requires_force(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    save_profile(paths, "work", make_cred("work"))
    with pytest.raises(UserError, match="--force"):
        save_profile(paths, "work", make_cred("other"))

    save_profile(paths, "work", make_cred("other"), force=True)
    assert load_profile(paths, "work").access == "access-other"


def test_load_errors(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    with pytest.raises(ProfileNotFound):
        load_profile(paths, "missing")
    with pytest.raises(UserError):
        load_profile(paths, "../escape")

    paths.profile_dir.mkdir(parents=True)
    profile_path(paths, "broken").write_text("{", encoding="utf-8")
    with pytest.raises(IOFailure):
        load_profile(paths, "broken")

    profile_path(paths, "other").write_text(
        json.dumps({"provider": "anthropic", "access": "a", "refresh": "r"}), encoding="utf-8"
    )
    with pytest.raises(UserError, match="provider"):
        load_profile(paths, "other")

    profile_path(paths, "partial").write_text(
        json.dumps({"provider": "openai-codex", "access": "a"}), encoding="utf-8"
    )
    with pytest.raises(CredentialValidationError):
        load_profile(paths, "partial")


def test_non_utf8_profile_is_io_failure(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("codex")
    paths.profile_dir.mkdir(parents=True)
    profile_path(paths, "garbled").write_bytes(b"\xff\xfe{")
    with pytest.raises(IOFailure):
        load_profile(paths, "garbled")
