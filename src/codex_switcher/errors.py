"""エラー分類と終了コード。

- UserError: 入力不正（プロファイル名、ツール名など）。I/O前に弾く
- IOFailure: ディスク/ロック/壊れたファイル。トランザクション中ならロールバック
- AuthFailure: 認証情報はあるが使えない（usage側が使う）
- PartialResult: 一部のツールが blocked / skipped_missing だった

CLI は `exit_code_for()` で終了コードに変換する。
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    USER_ERROR = 1
    PARTIAL = 2
    AUTH_FAILURE = 3
    IO_FAILURE = 4


class SwitcherError(Exception):
    """Base exception carrying the exit code the CLI should use."""

    exit_code: ExitCode = ExitCode.USER_ERROR


class UserError(SwitcherError):
    exit_code = ExitCode.USER_ERROR


class CredentialValidationError(UserError):
    """Credential lacks the tokens required for switching."""


class PartialResult(SwitcherError):
    exit_code = ExitCode.PARTIAL


class AuthFailure(SwitcherError):
    exit_code = ExitCode.AUTH_FAILURE


class IOFailure(SwitcherError):
    exit_code = ExitCode.IO_FAILURE


class LockTimeout(IOFailure):
    pass


def exit_code_for(exc: BaseException | None) -> int:
    if exc is None:
        return int(ExitCode.SUCCESS)
    if isinstance(exc, SwitcherError):
        return int(exc.exit_code)
    return int(ExitCode.USER_ERROR)
