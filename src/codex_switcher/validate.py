"""入力のバリデーション。I/O の前に呼ぶ。"""

from __future__ import annotations

import re

from codex_switcher.errors import UserError

_PROFILE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_profile_name(name: str) -> None:
    if not name:
        raise UserError("profile name is required")
    if not _PROFILE_NAME_RE.fullmatch(name):
        raise UserError(
            f"invalid profile name {name!r} (allowed: letters, numbers, ., _, -)"
        )


def redact_secret(value: str) -> str:
    # ログや表示にトークンを出さない
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"
