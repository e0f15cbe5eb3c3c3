"""validate のテスト。"""

import pytest

from codex_switcher.errors import UserError
from codex_switcher.validate import redact_secret, validate_profile_name


@pytest.mark.parametrize("name", ["work", "personal-2", "a.b_c", "__last__"])
def test_valid_profile_names(name: str) -> None:
    validate_profile_name(name)


@pytest.mark.parametrize("name", ["", "a/b", "../x", "with space", "tab\t", "work\n"])
def test_invalid_profile_names(name: str) -> None:
    with pytest.raises(UserError):
        validate_profile_name(name)


def test_redact_secret() -> None:
    assert redact_secret("short") == "****"
    assert redact_secret("abcdefghijkl") == "abcd...ijkl"
