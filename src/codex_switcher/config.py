"""codex-switcher 自体の設定。

設定ファイル: `$CODEX_SWITCHER_CONFIG` → `~/.config/codex-switcher/config.toml`
（無ければ既定値）

```toml
[lock]
wait_timeout_seconds = 10.0
retry_delay_seconds = 0.1
stale_after_seconds = 30.0

[logging]
level = "INFO"
dir = "~/.local/state/codex-switcher/logs"
```

各ツールの認証ファイルの場所は環境変数で決まる（paths.py）。ここでは上書きしない。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib  # type: ignore[no-redef]

from codex_switcher.errors import UserError
from codex_switcher.lock import LOCK_RETRY_DELAY, LOCK_STALE_AFTER, LOCK_WAIT_TIMEOUT

CONFIG_ENV = "CODEX_SWITCHER_CONFIG"


@dataclass
class LockConfig:
    wait_timeout_seconds: float = LOCK_WAIT_TIMEOUT
    retry_delay_seconds: float = LOCK_RETRY_DELAY
    stale_after_seconds: float = LOCK_STALE_AFTER


@dataclass
class LoggingConfig:
    level: str = "INFO"
    dir: Path = field(default_factory=lambda: Path("~/.local/state/codex-switcher/logs").expanduser())


@dataclass
class SwitcherConfig:
    lock: LockConfig = field(default_factory=LockConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path("~/.config/codex-switcher/config.toml").expanduser()


def load_config(path: Path | None = None) -> SwitcherConfig:
    if path is None:
        path = default_config_path()
    if not path.exists():
        return SwitcherConfig()

    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise UserError(f"invalid config {path}: {e}") from e

    lock = _table(raw, "lock", path)
    logging_ = _table(raw, "logging", path)

    try:
        return SwitcherConfig(
            lock=LockConfig(
                wait_timeout_seconds=float(lock.get("wait_timeout_seconds", LOCK_WAIT_TIMEOUT)),
                retry_delay_seconds=float(lock.get("retry_delay_seconds", LOCK_RETRY_DELAY)),
                stale_after_seconds=float(lock.get("stale_after_seconds", LOCK_STALE_AFTER)),
            ),
            logging=LoggingConfig(
                level=str(logging_.get("level", "INFO")),
                dir=Path(str(logging_.get("dir", "~/.local/state/codex-switcher/logs"))).expanduser(),
            ),
        )
    except (TypeError, ValueError) as e:
        raise UserError(f"invalid config {path}: {e}") from e


def _table(raw: dict, key: str, path: Path) -> dict:
    value = raw.get(key, {})
    if not isinstance(value, dict):
        raise UserError(f"invalid config {path}: [{key}] must be a table")
    return value
