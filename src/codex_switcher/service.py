"""切替エンジン（switch / capture / delete と参照系）。

switch の流れ（ツールは名前順に処理する）:
1. ツールごとに inspect。switchBlocked ならそのツールは触らない（blocked）
2. プロファイルを読む
   - ある → switch
   - 無いが pendingCreateProfile が同名で、有効な認証情報がある → switch + materialize
     （外部で完了したログインをそのプロファイルとして保存する）
   - 無い → createMissing なら prepare（認証情報を消して pending-create）、
     そうでなければ skipped_missing
3. dry-run ならここで計画だけ返す
4. 全ターゲットのロックを取る（1つでも失敗したら全部離して中断）
5. 書き込む前に、触るファイルの生バイトを退避
6. 既に同じプロファイルなら「修復」だけ（スナップショットも previous も触らない）
7. 現在の認証情報をスナップショットプロファイルへ退避してから書き込む
8. state を更新
9. 途中で失敗したら処理済みターゲットを逆順に元のバイトへ戻して例外を投げる
10. ロックは必ず解放
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path

from codex_switcher.adapter import Adapter, adapter_for
from codex_switcher.config import SwitcherConfig
from codex_switcher.errors import IOFailure, SwitcherError, UserError
from codex_switcher.fsutil import read_raw, restore_raw
from codex_switcher.lock import FileLock
from codex_switcher.models import (
    ALL_TOOLS,
    STATUS_ALREADY_ACTIVE,
    STATUS_BLOCKED,
    STATUS_PREPARED,
    STATUS_SKIPPED_MISSING,
    STATUS_SWITCHED,
    Credential,
    InspectToolResult,
    StateFile,
    StatusToolResult,
    SwitchOptions,
    SwitchResult,
    ToolPaths,
)
from codex_switcher.paths import resolve_tool_paths
from codex_switcher.profile_store import (
    ProfileNotFound,
    delete_profile,
    list_profiles,
    load_profile,
    profile_path,
    save_profile,
)
from codex_switcher.state import load_state, save_state, utc_now_iso
from codex_switcher.validate import redact_secret, validate_profile_name

log = logging.getLogger(__name__)

SNAPSHOT_FALLBACK_PROFILE = "__last__"

ACTION_SWITCH = "switch"
ACTION_PREPARE = "prepare"


def parse_tools(raw: str) -> list[str]:
    """`codex,opencode` 形式を解釈する。空なら全ツール。結果は名前順。"""
    if not raw.strip():
        return sorted(ALL_TOOLS)
    tools: list[str] = []
    for part in raw.split(","):
        name = part.strip().lower()
        if not name:
            continue
        if name not in ALL_TOOLS:
            raise UserError(f"unknown tool {name!r}")
        if name not in tools:
            tools.append(name)
    if not tools:
        raise UserError("no tools selected")
    return sorted(tools)


def choose_snapshot_profile(state: StateFile, target: str) -> str:
    if state.active_profile and state.active_profile != target:
        return state.active_profile
    return SNAPSHOT_FALLBACK_PROFILE


@dataclass
class _Target:
    tool: str
    paths: ToolPaths
    adapter: Adapter
    state: StateFile
    action: str
    cred: Credential | None = None
    materialize: bool = False


@dataclass
class _Rollback:
    """1ターゲット分の変更前バイト列。None は「元々無かった」。"""

    tool: str
    files: dict[Path, bytes | None] = field(default_factory=dict)

    def remember(self, path: Path) -> None:
        if path not in self.files:
            self.files[path] = read_raw(path)

    def restore(self) -> None:
        for path, content in reversed(list(self.files.items())):
            restore_raw(path, content)


@contextmanager
def _io_errors(context: str) -> Iterator[None]:
    try:
        yield
    except OSError as e:
        raise IOFailure(f"{context}: {e}") from e


class Service:
    def __init__(
        self,
        config: SwitcherConfig | None = None,
        *,
        adapter_factory: Callable[[str], Adapter] = adapter_for,
    ) -> None:
        self.config = config or SwitcherConfig()
        self._adapter_for = adapter_factory

    # --- 参照系（ロックなし） ---

    def inspect(self, tools: list[str]) -> list[InspectToolResult]:
        results: list[InspectToolResult] = []
        for tool in tools:
            adapter = self._adapter_for(tool)
            paths = resolve_tool_paths(tool)
            with _io_errors(f"{tool}: inspect"):
                results.append(adapter.inspect(paths))
        return results

    def status(self, tools: list[str]) -> list[StatusToolResult]:
        results: list[StatusToolResult] = []
        for tool in tools:
            adapter = self._adapter_for(tool)
            paths = resolve_tool_paths(tool)
            with _io_errors(f"{tool}: status"):
                inspect = adapter.inspect(paths)
                state = load_state(paths)
                profiles = list_profiles(paths)
            results.append(
                StatusToolResult(
                    tool=tool,
                    paths=paths,
                    has_active=inspect.has_active,
                    store_mode=inspect.store_mode,
                    switch_blocked=inspect.switch_blocked,
                    switch_block_reason=inspect.switch_block_reason,
                    active_profile=state.active_profile,
                    previous_profile=state.previous_profile,
                    pending_create_profile=state.pending_create_profile,
                    pending_create_since=state.pending_create_since,
                    profiles=profiles,
                )
            )
        return results

    def list_profiles(self, tool: str) -> list[str]:
        paths = resolve_tool_paths(tool)
        with _io_errors(f"{tool}: list profiles"):
            return list_profiles(paths)

    # --- 更新系 ---

    def capture(self, profile: str, tools: list[str], *, force: bool = False) -> list[InspectToolResult]:
        validate_profile_name(profile)

        results: list[InspectToolResult] = []
        for tool in sorted(tools):
            adapter = self._adapter_for(tool)
            paths = resolve_tool_paths(tool)
            with self._lock(paths), _io_errors(f"{tool}: capture"):
                cred = adapter.read_active_credential(paths)
                if cred is None:
                    log.info("capture %s: no active credential for %s", profile, tool)
                    results.append(InspectToolResult(tool=tool, paths=paths))
                    continue

                save_profile(paths, profile, cred, force=force)

                state = load_state(paths)
                if state.active_profile != profile:
                    state.previous_profile = state.active_profile
                state.active_profile = profile
                state.pending_create_profile = ""
                state.pending_create_since = ""
                state.last_switch_at = utc_now_iso()
                save_state(paths, state)

            log.info("captured %s for %s (access=%s)", profile, tool, redact_secret(cred.access))
            results.append(
                InspectToolResult(
                    tool=tool,
                    paths=paths,
                    has_active=True,
                    capturable=True,
                    account_id=cred.account_id,
                    email=cred.email,
                    expires=cred.expires,
                )
            )
        return results

    def switch(self, profile: str, tools: list[str], options: SwitchOptions | None = None) -> list[SwitchResult]:
        validate_profile_name(profile)
        options = options or SwitchOptions()

        targets, results = self._plan(profile, sorted(tools), options)

        if options.dry_run:
            results.extend(self._dry_run_result(t, profile) for t in targets)
            return _sorted_results(results)

        if not targets:
            return _sorted_results(results)

        locks = self._acquire_all(targets)
        try:
            results.extend(self._apply_all(targets, profile))
        finally:
            for lock in locks:
                lock.release()

        return _sorted_results(results)

    def delete_profile(self, name: str, tools: list[str]) -> None:
        validate_profile_name(name)
        for tool in sorted(tools):
            adapter = self._adapter_for(tool)
            paths = resolve_tool_paths(tool)
            with self._lock(paths), _io_errors(f"{tool}: delete profile"):
                delete_profile(paths, name)
                adapter.remove_profile_credential(paths, name)

                state = load_state(paths)
                changed = False
                if state.active_profile == name:
                    state.active_profile = ""
                    changed = True
                if state.previous_profile == name:
                    state.previous_profile = ""
                    changed = True
                if state.pending_create_profile == name:
                    state.pending_create_profile = ""
                    state.pending_create_since = ""
                    changed = True
                if changed:
                    state.last_switch_at = utc_now_iso()
                    save_state(paths, state)

    # --- switch の内部 ---

    def _plan(
        self, profile: str, tools: list[str], options: SwitchOptions
    ) -> tuple[list[_Target], list[SwitchResult]]:
        targets: list[_Target] = []
        results: list[SwitchResult] = []
        for tool in tools:
            adapter = self._adapter_for(tool)
            paths = resolve_tool_paths(tool)
            with _io_errors(f"{tool}: inspect"):
                inspect = adapter.inspect(paths)
                state = load_state(paths)

            if inspect.switch_blocked:
                results.append(
                    SwitchResult(
                        tool=tool,
                        to_profile=profile,
                        status=STATUS_BLOCKED,
                        warning=inspect.switch_block_reason,
                    )
                )
                continue

            try:
                with _io_errors(f"{tool}: load profile"):
                    cred = load_profile(paths, profile)
            except ProfileNotFound:
                with _io_errors(f"{tool}: read active credential"):
                    active = adapter.read_active_credential(paths)
                if active is not None and active.usable and state.pending_create_profile == profile:
                    targets.append(
                        _Target(tool, paths, adapter, state, ACTION_SWITCH, cred=active, materialize=True)
                    )
                elif options.create_missing:
                    targets.append(_Target(tool, paths, adapter, state, ACTION_PREPARE))
                else:
                    results.append(
                        SwitchResult(
                            tool=tool,
                            to_profile=profile,
                            status=STATUS_SKIPPED_MISSING,
                            warning="profile does not exist for this tool (use --create to prepare login)",
                        )
                    )
                continue
            except SwitcherError as e:
                raise type(e)(f"{tool}: {e}") from e

            targets.append(_Target(tool, paths, adapter, state, ACTION_SWITCH, cred=cred))
        return targets, results

    def _dry_run_result(self, t: _Target, profile: str) -> SwitchResult:
        result = SwitchResult(
            tool=t.tool,
            from_profile=t.state.active_profile,
            to_profile=profile,
            snapshot_profile=choose_snapshot_profile(t.state, profile),
            changed=True,
            status=STATUS_SWITCHED,
        )
        if t.action == ACTION_PREPARE:
            result.status = STATUS_PREPARED
            result.pending_create = True
        elif not t.materialize and t.state.active_profile == profile:
            result.status = STATUS_ALREADY_ACTIVE
            result.changed = False
            result.snapshot_profile = ""
        return result

    def _acquire_all(self, targets: list[_Target]) -> list[FileLock]:
        locks: list[FileLock] = []
        try:
            for t in targets:
                locks.append(self._acquire(t.paths))
        except BaseException:
            for held in locks:
                held.release()
            raise
        return locks

    def _apply_all(self, targets: list[_Target], profile: str) -> list[SwitchResult]:
        results: list[SwitchResult] = []
        rollback: list[_Rollback] = []
        try:
            for t in targets:
                record = _Rollback(tool=t.tool)
                rollback.append(record)
                record.remember(t.paths.active_path)
                record.remember(t.paths.state_path)
                results.append(self._apply(t, profile, record))
        except BaseException as e:
            log.warning("switch to %s failed, rolling back %d tool(s): %s", profile, len(rollback), e)
            self._rollback(rollback)
            if isinstance(e, IOFailure) or not isinstance(e, Exception):
                raise
            raise IOFailure(f"switch to {profile!r} failed: {e}") from e
        return results

    def _apply(self, t: _Target, profile: str, record: _Rollback) -> SwitchResult:
        paths = t.paths
        # 計画時の state はロック外で読んだもの。ロック下で読み直す
        old_state = load_state(paths)
        old_cred = t.adapter.read_active_credential(paths)
        has_live = old_cred is not None and old_cred.usable

        if t.action == ACTION_SWITCH and not t.materialize and old_state.active_profile == profile:
            return self._repair(t, profile, record, old_state, old_cred if has_live else None)

        snapshot = choose_snapshot_profile(old_state, profile)
        if has_live:
            record.remember(profile_path(paths, snapshot))
            save_profile(paths, snapshot, old_cred, force=True)

        if t.materialize:
            record.remember(profile_path(paths, profile))
            save_profile(paths, profile, t.cred, force=True)

        new_state = StateFile(previous_profile=snapshot, last_switch_at=utc_now_iso())
        result = SwitchResult(
            tool=t.tool,
            from_profile=old_state.active_profile,
            to_profile=profile,
            snapshot_profile=snapshot,
            changed=True,
            status=STATUS_SWITCHED,
        )
        if t.action == ACTION_SWITCH:
            t.adapter.write_profile_credential(paths, profile, t.cred)
            new_state.active_profile = profile
        else:
            t.adapter.clear_active_credential(paths)
            new_state.pending_create_profile = profile
            new_state.pending_create_since = utc_now_iso()
            result.status = STATUS_PREPARED
            result.pending_create = True

        save_state(paths, new_state)
        log.info(
            "%s: %s -> %s (%s, snapshot=%s)",
            t.tool, old_state.active_profile or "-", profile, result.status, snapshot,
        )
        return result

    def _repair(
        self,
        t: _Target,
        profile: str,
        record: _Rollback,
        old_state: StateFile,
        live: Credential | None,
    ) -> SwitchResult:
        """既に同じプロファイル。スナップショットは作らず previous も変えない。"""
        result = SwitchResult(
            tool=t.tool,
            from_profile=old_state.active_profile,
            to_profile=profile,
            changed=False,
            status=STATUS_ALREADY_ACTIVE,
        )
        if live is not None:
            # ツール側でトークンが更新されているかもしれないので保存側を追従させる
            record.remember(profile_path(t.paths, profile))
            save_profile(t.paths, profile, live, force=True)
        else:
            t.adapter.write_profile_credential(t.paths, profile, t.cred)
            result.status = STATUS_SWITCHED
            result.changed = True

        save_state(
            t.paths,
            replace(
                old_state,
                version=1,
                active_profile=profile,
                pending_create_profile="",
                pending_create_since="",
                last_switch_at=utc_now_iso(),
            ),
        )
        log.info("%s: %s already active (%s)", t.tool, profile, result.status)
        return result

    def _rollback(self, records: list[_Rollback]) -> None:
        for record in reversed(records):
            try:
                record.restore()
            except OSError:
                log.error("rollback failed for %s", record.tool, exc_info=True)

    def _acquire(self, paths: ToolPaths) -> FileLock:
        cfg = self.config.lock
        with _io_errors(f"{paths.tool}: lock"):
            return FileLock.acquire(
                paths.lock_path,
                wait_timeout=cfg.wait_timeout_seconds,
                retry_delay=cfg.retry_delay_seconds,
                stale_after=cfg.stale_after_seconds,
            )

    @contextmanager
    def _lock(self, paths: ToolPaths) -> Iterator[FileLock]:
        lock = self._acquire(paths)
        try:
            yield lock
        finally:
            lock.release()


def _sorted_results(results: list[SwitchResult]) -> list[SwitchResult]:
    return sorted(results, key=lambda r: r.tool)
