"""プロファイル（名前付きの認証情報スナップショット）の保存先。

- `<root>/profiles/openai-codex.<name>.json`（0600）
- 1プロファイル = 1ファイル。ディレクトリが無ければ空扱い
- 上書きは force=True のときだけ
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from codex_switcher.errors import CredentialValidationError, IOFailure, UserError
from codex_switcher.fsutil import read_json, write_json_atomic
from codex_switcher.identity import normalize_identity
from codex_switcher.models import PROVIDER, Credential, ProfileFile, ToolPaths, now_ms
from codex_switcher.validate import validate_profile_name

log = logging.getLogger(__name__)

PROFILE_PREFIX = f"{PROVIDER}."
PROFILE_SUFFIX = ".json"


class ProfileNotFound(UserError):
    pass


def profile_path(paths: ToolPaths, name: str) -> Path:
    return paths.profile_dir / f"{PROFILE_PREFIX}{name}{PROFILE_SUFFIX}"


def list_profiles(paths: ToolPaths) -> list[str]:
    if not paths.profile_dir.is_dir():
        return []
    names: list[str] = []
    for p in paths.profile_dir.iterdir():
        if p.is_dir():
            continue
        if not (p.name.startswith(PROFILE_PREFIX) and p.name.endswith(PROFILE_SUFFIX)):
            continue
        core = p.name[len(PROFILE_PREFIX):-len(PROFILE_SUFFIX)]
        if core:
            names.append(core)
    return sorted(names)


def load_profile(paths: ToolPaths, name: str) -> Credential:
    validate_profile_name(name)
    path = profile_path(paths, name)
    try:
        raw = read_json(path)
    except FileNotFoundError as e:
        raise ProfileNotFound(f"profile {name!r} does not exist for {paths.tool}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise IOFailure(f"profile {name!r} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise IOFailure(f"profile {name!r} is not a JSON object")

    p = ProfileFile.from_raw(raw)
    if p.provider != PROVIDER:
        raise UserError(f"profile {name!r} has unsupported provider {p.provider!r}")
    if not p.access or not p.refresh:
        raise CredentialValidationError(f"profile {name!r} is missing access/refresh token")
    return normalize_identity(p.to_credential())


def save_profile(paths: ToolPaths, name: str, cred: Credential, *, force: bool = False) -> Path:
    validate_profile_name(name)
    provider = cred.provider or PROVIDER
    if provider != PROVIDER:
        raise UserError(f"unsupported provider {provider!r}")
    if not cred.usable:
        raise CredentialValidationError("credential is missing access/refresh token")

    path = profile_path(paths, name)
    if not force and path.exists():
        raise UserError(
            f"profile {name!r} already exists for {paths.tool} (use --force to overwrite)"
        )

    write_json_atomic(path, ProfileFile.from_credential(cred, updated_at=now_ms()).to_raw())
    log.info("saved profile %s for %s", name, paths.tool)
    return path


def delete_profile(paths: ToolPaths, name: str) -> None:
    """削除する。無くても成功扱い。"""
    validate_profile_name(name)
    profile_path(paths, name).unlink(missing_ok=True)
    log.info("deleted profile %s for %s", name, paths.tool)
