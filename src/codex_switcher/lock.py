"""ツール単位のロックファイル。

- `O_CREAT | O_EXCL` で作成できたらロック獲得
- 本文は `<pid>\\n<unix秒>\\n`
- 既存ロックが古い（既定30秒）か本文が壊れていれば削除して再試行
- それ以外は 100ms 間隔で待ち、10秒で LockTimeout

NOTE:
- 単一ホスト・複数プロセス向けのアドバイザリロック。再入不可。
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from codex_switcher.errors import LockTimeout
from codex_switcher.fsutil import ensure_parent_dir

log = logging.getLogger(__name__)

LOCK_WAIT_TIMEOUT = 10.0
LOCK_RETRY_DELAY = 0.1
LOCK_STALE_AFTER = 30.0


@dataclass
class FileLock:
    path: Path
    released: bool = False

    @classmethod
    def acquire(
        cls,
        path: Path,
        *,
        wait_timeout: float = LOCK_WAIT_TIMEOUT,
        retry_delay: float = LOCK_RETRY_DELAY,
        stale_after: float = LOCK_STALE_AFTER,
    ) -> FileLock:
        path = Path(path)
        ensure_parent_dir(path)

        deadline = time.monotonic() + wait_timeout
        while True:
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except FileExistsError:
                pass
            else:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(f"{os.getpid()}\n{int(time.time())}\n")
                return cls(path=path)

            if is_stale_lock(path, stale_after=stale_after):
                log.warning("reclaiming stale lock: %s", path)
                path.unlink(missing_ok=True)
                continue

            if time.monotonic() >= deadline:
                raise LockTimeout(f"timeout acquiring lock {path}")
            time.sleep(retry_delay)

    def release(self) -> None:
        """ロックファイルを消す。既に無くても成功扱い。"""
        if self.released:
            return
        self.path.unlink(missing_ok=True)
        self.released = True

    def __enter__(self) -> FileLock:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()


def is_stale_lock(path: Path, *, stale_after: float = LOCK_STALE_AFTER) -> bool:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        # 直前に解放された。次のループで作成を再試行する
        return False
    except UnicodeDecodeError:
        return True
    except OSError:
        return False

    if not text.strip():
        # 作成直後で本文がまだ書かれていない可能性がある
        return _age_seconds(path) > stale_after

    parts = text.strip().split("\n")
    if len(parts) < 2:
        return True
    try:
        created = int(parts[1].strip())
    except ValueError:
        return True
    return time.time() - created > stale_after


def _age_seconds(path: Path) -> float:
    try:
        return time.time() - Path(path).stat().st_mtime
    except OSError:
        return 0.0
