"""errors のテスト。"""

from codex_switcher.errors import (
    AuthFailure,
    CredentialValidationError,
    IOFailure,
    LockTimeout,
    PartialResult,
    UserError,
    exit_code_for,
)


def test_exit_codes() -> None:
    assert exit_code_for(None) == 0
    assert exit_code_for(UserError("x")) == 1
    assert exit_code_for(CredentialValidationError("x")) == 1
    assert exit_code_for(PartialResult("x")) == 2
    assert exit_code_for(AuthFailure("x")) == 3
    assert exit_code_for(IOFailure("x")) == 4
    assert exit_code_for(LockTimeout("x")) == 4
    assert exit_code_for(RuntimeError("x")) == 1
