"""Shared-secret bearer check for the cron endpoints."""

from __future__ import annotations

import hmac

from fastapi import Depends, Request

from catalog_sync.config import Settings, get_settings
from catalog_sync.errors import AuthError


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def check_cron_secret(token: str | None, secret: str | None) -> None:
    # An unset secret must never match an absent header
    if not secret or not token:
        raise AuthError("Missing cron credential")
    if not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
        raise AuthError("Invalid cron credential")


def require_cron_secret(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    check_cron_secret(bearer_token(request), settings.cron_secret)
