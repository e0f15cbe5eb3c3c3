"""JWT からアカウントID/メールを取り出す。

表示用の claim 抽出のみ。署名は検証しない（認可には絶対に使わない）。
"""

from __future__ import annotations

import base64
import json
from dataclasses import replace
from typing import Any

from codex_switcher.models import Credential

AUTH_CLAIM = "https://api.openai.com/auth"
PROFILE_CLAIM = "https://api.openai.com/profile"
ACCOUNT_ID_CLAIM = "https://api.openai.com/auth.chatgpt_account_id"


def parse_jwt_claims(token: str) -> dict[str, Any] | None:
    if not token:
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1]
    padding = "=" * (-len(segment) % 4)
    try:
        payload = base64.urlsafe_b64decode(segment + padding)
        claims = json.loads(payload.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    return claims if isinstance(claims, dict) else None


def extract_account_id(claims: dict[str, Any] | None) -> str:
    if not claims:
        return ""
    direct = claims.get("chatgpt_account_id")
    if isinstance(direct, str) and direct:
        return direct
    auth = claims.get(AUTH_CLAIM)
    if isinstance(auth, dict):
        nested = auth.get("chatgpt_account_id")
        if isinstance(nested, str) and nested:
            return nested
    dotted = claims.get(ACCOUNT_ID_CLAIM)
    if isinstance(dotted, str) and dotted:
        return dotted
    orgs = claims.get("organizations")
    if isinstance(orgs, list) and orgs and isinstance(orgs[0], dict):
        org_id = orgs[0].get("id")
        if isinstance(org_id, str) and org_id:
            return org_id
    return ""


def extract_email(claims: dict[str, Any] | None) -> str:
    if not claims:
        return ""
    email = claims.get("email")
    if isinstance(email, str) and email:
        return email
    profile = claims.get(PROFILE_CLAIM)
    if isinstance(profile, dict):
        nested = profile.get("email")
        if isinstance(nested, str) and nested:
            return nested
    return ""


def normalize_identity(cred: Credential) -> Credential:
    """access token の claim を優先し、足りなければ id token から補う。"""
    account_id = cred.account_id
    email = cred.email

    claims = parse_jwt_claims(cred.access)
    if claims is not None:
        account_id = extract_account_id(claims) or account_id
        email = extract_email(claims) or email

    claims = parse_jwt_claims(cred.id_token)
    if claims is not None:
        account_id = account_id or extract_account_id(claims)
        email = email or extract_email(claims)

    return replace(cred, account_id=account_id, email=email)
