"""logging の初期化。

- 詳細ログ: `<log_dir>/codex-switcher.log`（ローテーション）
- トークンはログに出さない（validate.redact_secret を使う）
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(*, log_dir: Path, level: str = "INFO") -> None:
    # 既に設定済みなら二重設定しない
    if getattr(setup_logging, "_configured", False):
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "codex-switcher.log"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = RotatingFileHandler(
        log_path,
        maxBytes=2_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(fmt)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    setup_logging._configured = True  # type: ignore[attr-defined]
