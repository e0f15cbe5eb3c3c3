"""OpenCode アダプタのテスト。"""

import json
from pathlib import Path

from conftest import make_cred

from codex_switcher.adapter_opencode import OpenCodeAdapter
from codex_switcher.models import Credential, now_ms
from codex_switcher.paths import resolve_tool_paths


def test_roundtrip_preserves_other_providers(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("opencode")
    paths.root_dir.mkdir(parents=True)
    paths.active_path.write_text(
        json.dumps({"anthropic": {"type": "api", "key": "sk-x"}}), encoding="utf-8"
    )

    adapter = OpenCodeAdapter()
    adapter.write_active_credential(paths, make_cred("work"))

    data = json.loads(paths.active_path.read_text(encoding="utf-8"))
    assert data["anthropic"] == {"type": "api", "key": "sk-x"}
    assert data["openai"]["type"] == "oauth"
    assert data["openai"]["accountId"] == "acct-work"

    cred = adapter.read_active_credential(paths)
    assert cred is not None
    assert (cred.access, cred.refresh) == ("access-work", "refresh-work")

    adapter.clear_active_credential(paths)
    data = json.loads(paths.active_path.read_text(encoding="utf-8"))
    assert data == {"anthropic": {"type": "api", "key": "sk-x"}}


def test_optional_fields_omitted(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("opencode")
    OpenCodeAdapter().write_active_credential(paths, Credential(access="a", refresh="r"))
    data = json.loads(paths.active_path.read_text(encoding="utf-8"))
    assert data["openai"] == {"type": "oauth", "access": "a", "refresh": "r"}


def test_non_oauth_entry_is_ignored(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("opencode")
    paths.root_dir.mkdir(parents=True)
    paths.active_path.write_text(
        json.dumps({"openai": {"type": "api", "access": "a", "refresh": "r"}}), encoding="utf-8"
    )
    assert OpenCodeAdapter().read_active_credential(paths) is None
    assert not OpenCodeAdapter().inspect(paths).has_active


def test_inspect_warns_on_expiry(homes: dict[str, Path]) -> None:
    paths = resolve_tool_paths("opencode")
    adapter = OpenCodeAdapter()

    adapter.write_active_credential(paths, Credential(access="a", refresh="r", expires=1))
    assert adapter.inspect(paths).warnings == ["active credential is expired"]

    soon = now_ms() + 60_000
    adapter.write_active_credential(paths, Credential(access="a", refresh="r", expires=soon))
    assert adapter.inspect(paths).warnings == ["active credential expires within 24h"]
