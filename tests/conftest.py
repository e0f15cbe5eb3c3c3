from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from codex_switcher.models import Credential

_TOOL_ENV = (
    "CODEX_HOME",
    "XDG_DATA_HOME",
    "OPENCLAW_AGENT_DIR",
    "PI_CODING_AGENT_DIR",
    "OPENCLAW_STATE_DIR",
    "CLAWDBOT_STATE_DIR",
    "OPENCLAW_HOME",
    "USERPROFILE",
)


def make_jwt(claims: dict) -> str:
    """署名なしのテスト用 JWT。"""

    def seg(obj: dict) -> str:
        raw = json.dumps(obj).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{seg({'alg': 'none'})}.{seg(claims)}.sig"


def make_cred(name: str, *, email: str = "", account_id: str = "") -> Credential:
    return Credential(
        access=f"access-{name}",
        refresh=f"refresh-{name}",
        expires=4_102_444_800_000,
        account_id=account_id or f"acct-{name}",
        email=email,
    )


@pytest.fixture()
def homes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """各ツールの保存先を tmp_path 配下に向ける。"""
    for key in _TOOL_ENV:
        monkeypatch.delenv(key, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    codex = tmp_path / "codex"
    data = tmp_path / "data"
    openclaw = tmp_path / "openclaw-agent"
    monkeypatch.setenv("CODEX_HOME", str(codex))
    monkeypatch.setenv("XDG_DATA_HOME", str(data))
    monkeypatch.setenv("OPENCLAW_AGENT_DIR", str(openclaw))

    config = tmp_path / "config.toml"
    config.write_text(
        f"""
[lock]
wait_timeout_seconds = 0.3
retry_delay_seconds = 0.01

[logging]
level = "DEBUG"
dir = "{(tmp_path / 'logs').as_posix()}"
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("CODEX_SWITCHER_CONFIG", str(config))

    return {
        "home": home,
        "codex": codex,
        "opencode": data / "opencode",
        "openclaw": openclaw,
        "config": config,
    }
