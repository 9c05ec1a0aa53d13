"""Sign-in, sign-up and external identity callback routes."""

from __future__ import annotations

import uuid
from functools import partial
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from ...core import FRONTEND_ORIGIN, FRONTEND_ORIGINS, REGISTRATION_PATH, get_session, t
from ...models import Account
from ...oauth_client import HandshakeError, IdentityProvider, get_identity_provider
from ...services.accounts import authenticate, register_account
from ...services.callbacks import (
    PROVIDERS,
    Provider,
    RequestContext,
    get_provider,
    handle_callback,
    handle_failure,
    sign_in_session,
    sign_out_session,
)
from ...services.identity import IdentityAssertion, resolve

router = APIRouter(tags=["auth"])


def _root_url() -> str:
    return FRONTEND_ORIGIN or "/"


def _registration_url() -> str:
    return f"{FRONTEND_ORIGIN.rstrip('/')}{REGISTRATION_PATH}"


def _account_payload(account: Account) -> Dict[str, Any]:
    return {
        "id": str(account.id),
        "email": account.email,
        "name": account.display_name,
        "avatar_url": account.avatar_url,
        "provider": account.provider,
    }


def _safe_next(url: Optional[str]) -> str:
    """Keep ``url`` only when it points at one of the frontend origins."""

    if not url:
        return _root_url()
    parts = urlsplit(url)
    if not parts.scheme and not parts.netloc and url.startswith("/") and "\\" not in url:
        return f"{FRONTEND_ORIGIN.rstrip('/')}{url}"
    for origin in FRONTEND_ORIGINS:
        allowed = urlsplit(origin)
        if (parts.scheme, parts.netloc) == (allowed.scheme, allowed.netloc):
            return url
    return _root_url()


def _text(body: Dict[str, Any], key: str) -> Optional[str]:
    value = body.get(key)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _find_stash(context: RequestContext) -> tuple[Optional[Provider], Optional[IdentityAssertion]]:
    for provider in PROVIDERS.values():
        data = context.peek_stash(provider)
        if data:
            return provider, IdentityAssertion.from_auth_hash(data)
    return None, None


@router.get("/users/auth/failure")
def auth_failure(request: Request, message: str = "unknown error"):
    outcome = handle_failure(RequestContext(request.session), message, root_url=_root_url())
    return RedirectResponse(outcome.redirect_to, status_code=302)


@router.get("/users/auth/{provider_key}")
async def auth_start(
    provider_key: str,
    request: Request,
    next: str | None = None,
    identity: IdentityProvider = Depends(get_identity_provider),
):
    provider = get_provider(provider_key)
    if not identity.is_configured(provider):
        raise HTTPException(
            status_code=500,
            detail=f"{provider.label} OAuth not configured.",
        )
    if next:
        request.session["next"] = next
    return await identity.authorize_redirect(request, provider)


@router.get("/users/auth/{provider_key}/callback")
async def auth_callback(
    provider_key: str,
    request: Request,
    session: Session = Depends(get_session),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    provider = get_provider(provider_key)
    context = RequestContext(request.session)
    next_url = _safe_next(context.pop("next"))

    try:
        assertion = await identity.fetch_assertion(request, provider)
    except HandshakeError as exc:
        outcome = handle_failure(context, exc.reason, root_url=_root_url())
        return RedirectResponse(outcome.redirect_to, status_code=302)

    outcome = handle_callback(
        context,
        provider,
        assertion,
        resolver=partial(resolve, session),
        sign_in=sign_in_session,
        landing_url=next_url,
        registration_url=_registration_url(),
    )
    return RedirectResponse(outcome.redirect_to, status_code=302)


@router.get("/users/sign_up")
def sign_up_form(request: Request):
    """Pre-fill data for completing a registration after a failed callback."""

    context = RequestContext(request.session)
    provider, assertion = _find_stash(context)
    return {
        "prefill": {
            "email": assertion.email if assertion else None,
            "name": assertion.name if assertion else None,
            "avatar_url": assertion.image if assertion else None,
            "provider": provider.key if provider else None,
        },
        "flash": context.pop_flashes(),
    }


@router.post("/users", status_code=201)
def sign_up(
    body: Dict[str, Any],
    request: Request,
    session: Session = Depends(get_session),
):
    """Register with email and password, binding any stashed external identity."""

    context = RequestContext(request.session)
    _, assertion = _find_stash(context)

    resolution = register_account(
        session,
        email=_text(body, "email") or (assertion.email if assertion else None),
        password=_text(body, "password"),
        password_confirmation=_text(body, "password_confirmation"),
        name=_text(body, "name") or (assertion.name if assertion else None),
        provider=assertion.provider if assertion else None,
        uid=assertion.uid if assertion else None,
        avatar_url=assertion.image if assertion else None,
    )
    if not resolution.persisted:
        return JSONResponse({"errors": resolution.errors}, status_code=422)

    sign_in_session(context, resolution.account)
    return {
        "user": _account_payload(resolution.account),
        "notice": t("devise.registrations.signed_up"),
    }


@router.post("/users/sign_in")
def sign_in(
    body: Dict[str, Any],
    request: Request,
    session: Session = Depends(get_session),
):
    account = authenticate(session, _text(body, "email"), _text(body, "password"))
    if account is None:
        raise HTTPException(status_code=401, detail=t("devise.failure.invalid"))
    sign_in_session(RequestContext(request.session), account)
    return {"user": _account_payload(account), "notice": t("devise.sessions.signed_in")}


@router.delete("/users/sign_out")
def sign_out(request: Request):
    context = RequestContext(request.session)
    sign_out_session(context)
    for provider in PROVIDERS.values():
        context.pop_stash(provider)
    return {"ok": True, "notice": t("devise.sessions.signed_out")}


@router.get("/me")
def me(request: Request, session: Session = Depends(get_session)):
    uid = request.session.get("uid")
    if not uid:
        return JSONResponse({"user": None})
    try:
        account = session.get(Account, uuid.UUID(uid))
    except ValueError:
        account = None
    if not account:
        sign_out_session(RequestContext(request.session))
        return JSONResponse({"user": None})
    return JSONResponse({"user": _account_payload(account)})


@router.get("/flash")
def flash(request: Request):
    return {"flash": RequestContext(request.session).pop_flashes()}


__all__ = ["router"]
