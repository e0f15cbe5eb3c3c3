"""codex-switcher CLI エントリポイント。"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from codex_switcher.config import load_config
from codex_switcher.errors import ExitCode, SwitcherError, exit_code_for
from codex_switcher.logging_setup import setup_logging
from codex_switcher.models import PARTIAL_STATUSES, SwitchOptions
from codex_switcher.service import Service, parse_tools
from codex_switcher.version import VERSION

APP_HELP = "Codex / OpenCode / OpenClaw の OpenAI OAuth 認証情報をまとめて切り替える"

app = typer.Typer(add_completion=False, help=APP_HELP)
profiles_app = typer.Typer(add_completion=False, help="保存済みプロファイルの操作")
app.add_typer(profiles_app, name="profiles")

console = Console()
log = logging.getLogger(__name__)

T = TypeVar("T")

TOOLS_HELP = "対象ツール（カンマ区切り: codex,opencode,openclaw。空なら全部）"


def _service() -> Service:
    config = load_config()
    setup_logging(log_dir=config.logging.dir, level=config.logging.level)
    return Service(config)


def _call(fn: Callable[[], T]) -> T:
    """型付きエラーを終了コードへ変換する。"""
    try:
        return fn()
    except SwitcherError as e:
        log.error("%s", e)
        console.print(f"❌ {e}", style="red", markup=False, highlight=False)
        raise typer.Exit(code=exit_code_for(e)) from e


def _echo_json(payload: Any) -> None:
    # rich は長い行を折り返すので JSON は素のまま出す
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _fmt_expires(expires: int) -> str:
    if expires <= 0:
        return "-"
    return datetime.fromtimestamp(expires / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


@app.command()
def version() -> None:
    """バージョンを表示。"""
    typer.echo(VERSION)


@app.command()
def inspect(
    tools: str = typer.Option("", "--tools", help=TOOLS_HELP),
    as_json: bool = typer.Option(False, "--json", help="JSONで出力"),
) -> None:
    """各ツールの認証ファイルを調べる（読み取りのみ）。"""
    svc = _call(_service)
    results = _call(lambda: svc.inspect(parse_tools(tools)))

    if as_json:
        _echo_json([r.to_dict() for r in results])
        return

    table = Table(title="inspect")
    for col in ("tool", "active", "capturable", "account", "email", "expires", "store"):
        table.add_column(col)
    for r in results:
        store = r.store_mode or "-"
        if r.switch_blocked:
            store = f"{store} (blocked)"
        table.add_row(
            r.tool,
            "yes" if r.has_active else "no",
            "yes" if r.capturable else "no",
            r.account_id or "-",
            r.email or "-",
            _fmt_expires(r.expires),
            store,
        )
    console.print(table)
    for r in results:
        if r.switch_block_reason:
            console.print(f"  ⚠️  {r.tool}: {r.switch_block_reason}", style="yellow")
        for w in r.warnings:
            console.print(f"  ⚠️  {r.tool}: {w}", style="yellow")


@app.command()
def status(
    tools: str = typer.Option("", "--tools", help=TOOLS_HELP),
    as_json: bool = typer.Option(False, "--json", help="JSONで出力"),
) -> None:
    """現在のプロファイルと保存済みプロファイルを表示。"""
    svc = _call(_service)
    results = _call(lambda: svc.status(parse_tools(tools)))

    if as_json:
        _echo_json([r.to_dict() for r in results])
        return

    for r in results:
        active = r.active_profile or "(none)"
        console.print(f"{r.tool}: active={active}", style="bold")
        if r.previous_profile:
            console.print(f"  previous: {r.previous_profile}")
        if r.pending_create_profile:
            console.print(
                f"  pending login: {r.pending_create_profile} (since {r.pending_create_since})",
                style="yellow",
            )
        if r.switch_blocked:
            console.print(f"  blocked: {r.switch_block_reason}", style="yellow")
        console.print(f"  profiles ({r.profile_count}): {', '.join(r.profiles) or '-'}", style="dim")


@app.command()
def capture(
    name: str = typer.Argument(..., help="保存するプロファイル名"),
    tools: str = typer.Option("", "--tools", help=TOOLS_HELP),
    force: bool = typer.Option(False, "--force", help="既存プロファイルを上書き"),
    as_json: bool = typer.Option(False, "--json", help="JSONで出力"),
) -> None:
    """現在ログイン中の認証情報をプロファイルとして保存。"""
    svc = _call(_service)
    results = _call(lambda: svc.capture(name, parse_tools(tools), force=force))

    if as_json:
        _echo_json([r.to_dict() for r in results])
        return

    for r in results:
        if r.has_active:
            console.print(f"  ✅ {r.tool}: saved {name}", style="green")
        else:
            console.print(f"  ⏭️  {r.tool}: no active credential", style="dim")


@app.command()
def switch(
    name: str = typer.Argument(..., help="切り替え先のプロファイル名"),
    tools: str = typer.Option("", "--tools", help=TOOLS_HELP),
    dry_run: bool = typer.Option(False, "--dry-run", help="書き込まずに計画だけ出す"),
    create: bool = typer.Option(
        False, "--create", help="プロファイルが無いツールはログイン待ち状態にする"
    ),
    as_json: bool = typer.Option(False, "--json", help="JSONで出力"),
) -> None:
    """全ツールをまとめて切り替える（失敗したら全部元に戻す）。"""
    svc = _call(_service)
    opts = SwitchOptions(dry_run=dry_run, create_missing=create)
    results = _call(lambda: svc.switch(name, parse_tools(tools), opts))

    if as_json:
        _echo_json([r.to_dict() for r in results])
    else:
        if dry_run:
            console.print("(dry-run)", style="dim")
        for r in results:
            line = f"{r.tool}: {r.status}"
            if r.from_profile:
                line += f" ({r.from_profile} -> {r.to_profile})"
            if r.snapshot_profile:
                line += f" snapshot={r.snapshot_profile}"
            style = "yellow" if r.status in PARTIAL_STATUSES else "green"
            console.print(f"  {line}", style=style)
            if r.warning:
                console.print(f"    {r.warning}", style="yellow")
            if r.pending_create:
                console.print(f"    {r.tool} にログインしてから再度 switch {name} を実行してください", style="cyan")

    if any(r.status in PARTIAL_STATUSES for r in results):
        raise typer.Exit(code=int(ExitCode.PARTIAL))


@profiles_app.command("list")
def profiles_list(
    tools: str = typer.Option("", "--tools", help=TOOLS_HELP),
    as_json: bool = typer.Option(False, "--json", help="JSONで出力"),
) -> None:
    """保存済みプロファイルを一覧表示。"""
    svc = _call(_service)
    selected = _call(lambda: parse_tools(tools))
    listed = {tool: _call(lambda tool=tool: svc.list_profiles(tool)) for tool in selected}

    if as_json:
        _echo_json(listed)
        return

    for tool, names in listed.items():
        console.print(f"{tool}:", style="bold")
        if not names:
            console.print("  (no profiles)", style="dim")
        for n in names:
            console.print(f"  - {n}")


@profiles_app.command("delete")
def profiles_delete(
    name: str = typer.Argument(..., help="削除するプロファイル名"),
    tools: str = typer.Option("", "--tools", help=TOOLS_HELP),
) -> None:
    """プロファイルを削除（state の参照も外す）。"""
    svc = _call(_service)
    _call(lambda: svc.delete_profile(name, parse_tools(tools)))
    console.print(f"  🗑️  deleted {name}", style="green")
