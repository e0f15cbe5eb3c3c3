"""認証ストアのアダプタ（ツールごとの差分を吸収する）。

共通の約束:
- inspect: ファイルが無くても失敗しない（ゼロ値・ブロックなし）
- read_active_credential: 無い/形が違う/トークン不足 → None
- write_active_credential: access/refresh が空なら CredentialValidationError。
  既存ファイルの無関係なキーは残す（read-merge-write）
- clear_active_credential: このプロバイダの認証情報だけ消す
"""

from __future__ import annotations

from codex_switcher.errors import CredentialValidationError, UserError
from codex_switcher.models import Credential, InspectToolResult, ToolPaths

NEAR_EXPIRY_MS = 24 * 60 * 60 * 1000


class Adapter:
    tool: str = ""

    def inspect(self, paths: ToolPaths) -> InspectToolResult:
        out = InspectToolResult(tool=self.tool, paths=paths)
        cred = self.read_active_credential(paths)
        _fill_from_credential(out, cred)
        return out

    def read_active_credential(self, paths: ToolPaths) -> Credential | None:
        raise NotImplementedError

    def write_active_credential(self, paths: ToolPaths, cred: Credential) -> None:
        raise NotImplementedError

    def clear_active_credential(self, paths: ToolPaths) -> None:
        raise NotImplementedError

    def write_profile_credential(self, paths: ToolPaths, profile: str, cred: Credential) -> None:
        """プロファイル名付きで書く。名前を保存しないストアでは通常の書き込みと同じ。"""
        self.write_active_credential(paths, cred)

    def remove_profile_credential(self, paths: ToolPaths, profile: str) -> None:
        """ストア側に残したプロファイルの痕跡を消す。既定では何もしない。"""
        return None

    def _require_usable(self, cred: Credential) -> None:
        if not cred.usable:
            raise CredentialValidationError(
                f"{self.tool} credential requires access and refresh token"
            )


def _fill_from_credential(out: InspectToolResult, cred: Credential | None) -> None:
    if cred is None:
        return
    out.has_active = True
    out.capturable = cred.usable
    out.account_id = cred.account_id
    out.email = cred.email
    out.expires = cred.expires
    if cred.is_expired():
        out.warnings.append("active credential is expired")
    elif cred.near_expiry(NEAR_EXPIRY_MS):
        out.warnings.append("active credential expires within 24h")


def adapter_for(tool: str) -> Adapter:
    from codex_switcher.adapter_codex import CodexAdapter
    from codex_switcher.adapter_openclaw import OpenClawAdapter
    from codex_switcher.adapter_opencode import OpenCodeAdapter

    adapters: dict[str, type[Adapter]] = {
        CodexAdapter.tool: CodexAdapter,
        OpenCodeAdapter.tool: OpenCodeAdapter,
        OpenClawAdapter.tool: OpenClawAdapter,
    }
    cls = adapters.get(tool)
    if cls is None:
        raise UserError(f"unknown tool {tool!r}")
    return cls()
