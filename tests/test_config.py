"""config のテスト。"""

from pathlib import Path

import pytest

from codex_switcher.config import load_config
from codex_switcher.errors import UserError
from codex_switcher.lock import LOCK_STALE_AFTER


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "nope.toml")
    assert cfg.lock.wait_timeout_seconds == 10.0
    assert cfg.lock.retry_delay_seconds == 0.1
    assert cfg.lock.stale_after_seconds == 30.0
    assert cfg.logging.level == "INFO"


def test_config_from_env(homes: dict[str, Path]) -> None:
    cfg = load_config()
    assert cfg.lock.wait_timeout_seconds == 0.3
    assert cfg.lock.retry_delay_seconds == 0.01
    assert cfg.lock.stale_after_seconds == LOCK_STALE_AFTER
    assert cfg.logging.level == "DEBUG"


def test_invalid_toml(tmp_path: Path) -> None:
    p = tmp_path / "config.toml"
    p.write_text("[lock\n", encoding="utf-8")
    with pytest.raises(UserError):
        load_config(p)


@pytest.mark.parametrize(
    "body",
    [
        "lock = 5\n",
        '[lock]\nwait_timeout_seconds = "soon"\n',
        "[logging]\nlevel = 1\n[lock]\nretry_delay_seconds = [1]\n",
    ],
)
def test_invalid_config_values(tmp_path: Path, body: str) -> None:
    p = tmp_path / "config.toml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(UserError):
        load_config(p)


def test_non_utf8_config(tmp_path: Path) -> None:
    p = tmp_path / "config.toml"
    p.write_bytes(b"\xff\xfe[lock]")
    with pytest.raises(UserError):
        load_config(p)
