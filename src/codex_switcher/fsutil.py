"""ファイル書き込みユーティリティ。

方針:
- 書き込みは「一時ファイル → fsync → rename → ディレクトリ fsync」
- rename が原子性の境界。クラッシュしても旧内容か新内容のどちらかが残る
- JSON は2スペースインデント + 末尾改行で正規化（差分が安定する）
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)


def write_file_atomic(path: Path, content: bytes, mode: int = FILE_MODE) -> None:
    path = Path(path)
    ensure_parent_dir(path)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.tmp.")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    _fsync_dir(path.parent)


def write_json_atomic(path: Path, value: Any) -> None:
    text = json.dumps(value, ensure_ascii=False, indent=2) + "\n"
    write_file_atomic(path, text.encode("utf-8"), FILE_MODE)


def read_json(path: Path) -> Any:
    """JSON を読む。ファイルが無ければ FileNotFoundError をそのまま投げる。"""
    return json.loads(Path(path).read_text(encoding="utf-8"))


def read_json_object(path: Path) -> dict[str, Any] | None:
    """JSON オブジェクトを読む。無い/壊れている/オブジェクトでない → None。

    read-merge-write 用。I/O エラー（権限など）は呼び出し元へ伝播する。
    """
    try:
        raw = read_json(path)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, UnicodeDecodeError):
        log.warning("ignoring malformed JSON in %s", path)
        return None
    return raw if isinstance(raw, dict) else None


def read_raw(path: Path) -> bytes | None:
    """ロールバック用に生バイトを読む。無ければ None。"""
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        return None


def restore_raw(path: Path, content: bytes | None) -> None:
    """read_raw で取った内容に戻す。None なら削除する。"""
    path = Path(path)
    if content is None:
        path.unlink(missing_ok=True)
        return
    write_file_atomic(path, content, FILE_MODE)


def _fsync_dir(directory: Path) -> None:
    # メタデータの永続化のみ。失敗しても内容の正しさには影響しない
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError as e:
        log.debug("open dir for fsync failed: %s (%s)", directory, e)
        return
    try:
        os.fsync(dir_fd)
    except OSError as e:
        log.debug("fsync dir failed: %s (%s)", directory, e)
    finally:
        os.close(dir_fd)
