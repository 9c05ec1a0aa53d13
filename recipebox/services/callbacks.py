"""Post-handshake branching for external identity providers.

A provider callback ends in exactly one of three ways:

* ``SignedIn`` - the assertion resolved to a stored account and a session
  was established for it.
* ``NeedsCompletion`` - the account could not be stored; the assertion is
  stashed in the session so the registration form can pre-fill it.
* ``HandshakeFailed`` - the provider never produced an assertion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Union

from ..core.i18n import t
from ..models import Account
from .accounts import Resolution
from .identity import IdentityAssertion

logger = logging.getLogger(__name__)

FLASH_KEY = "_flash"
AUTH_SESSION_KEYS = ("uid", "name", "email")


class UnknownProvider(LookupError):
    """Raised for a provider key with no registered configuration."""


@dataclass(frozen=True)
class Provider:
    key: str
    label: str
    client_name: str
    server_metadata_url: str
    scope: str = "openid email profile"

    @property
    def stash_key(self) -> str:
        return f"devise.{self.label.lower()}_data"


PROVIDERS: Dict[str, Provider] = {
    "google_oauth2": Provider(
        key="google_oauth2",
        label="Google",
        client_name="google",
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
    ),
}


def get_provider(key: str) -> Provider:
    try:
        return PROVIDERS[key]
    except KeyError:
        raise UnknownProvider(key) from None


class RequestContext:
    """Key-value state scoped to one request and the redirect that follows it."""

    def __init__(self, session: MutableMapping[str, Any]):
        self.session = session

    def get(self, key: str, default: Any = None) -> Any:
        return self.session.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.session[key] = value

    def pop(self, key: str, default: Any = None) -> Any:
        return self.session.pop(key, default)

    def flash(self, kind: str, message: str) -> None:
        messages = list(self.session.get(FLASH_KEY) or [])
        messages.append({"kind": kind, "message": message})
        self.session[FLASH_KEY] = messages

    def pop_flashes(self) -> List[Dict[str, str]]:
        return list(self.session.pop(FLASH_KEY, None) or [])

    def stash(self, provider: Provider, data: Dict[str, Any]) -> None:
        self.session[provider.stash_key] = data

    def peek_stash(self, provider: Provider) -> Optional[Dict[str, Any]]:
        return self.session.get(provider.stash_key)

    def pop_stash(self, provider: Provider) -> Optional[Dict[str, Any]]:
        """Return the stashed assertion once; later calls get ``None``."""

        return self.session.pop(provider.stash_key, None)


@dataclass(frozen=True)
class SignedIn:
    account: Account
    redirect_to: str
    notice: str


@dataclass(frozen=True)
class NeedsCompletion:
    errors: List[str]
    stashed: Dict[str, Any]
    redirect_to: str
    alert: str


@dataclass(frozen=True)
class HandshakeFailed:
    reason: str
    redirect_to: str
    alert: str


Outcome = Union[SignedIn, NeedsCompletion, HandshakeFailed]
Resolver = Callable[[IdentityAssertion], Resolution]
SignIn = Callable[[RequestContext, Account], None]


def sign_in_session(context: RequestContext, account: Account) -> None:
    """Bind the request session to ``account`` and drop any stashed identity."""

    for key in AUTH_SESSION_KEYS:
        context.pop(key)
    for provider in PROVIDERS.values():
        context.pop_stash(provider)
    context.set("uid", str(account.id))
    context.set("name", account.display_name)
    context.set("email", account.email)


def sign_out_session(context: RequestContext) -> None:
    for key in AUTH_SESSION_KEYS:
        context.pop(key)


def handle_callback(
    context: RequestContext,
    provider: Provider,
    assertion: IdentityAssertion,
    *,
    resolver: Resolver,
    sign_in: SignIn = sign_in_session,
    landing_url: str,
    registration_url: str,
) -> Outcome:
    """Resolve ``assertion`` and either sign the account in or ask for completion."""

    resolution = resolver(assertion)

    if resolution.persisted:
        sign_in(context, resolution.account)
        notice = t("devise.omniauth_callbacks.success", kind=provider.label)
        context.flash("notice", notice)
        logger.info("signed in account %s via %s", resolution.account.id, provider.key)
        return SignedIn(account=resolution.account, redirect_to=landing_url, notice=notice)

    stashed = assertion.to_session_data()
    context.stash(provider, stashed)
    alert = "\n".join(resolution.errors)
    context.flash("alert", alert)
    logger.info(
        "%s identity needs completion: %s", provider.key, "; ".join(resolution.errors)
    )
    return NeedsCompletion(
        errors=list(resolution.errors),
        stashed=stashed,
        redirect_to=registration_url,
        alert=alert,
    )


def handle_failure(context: RequestContext, reason: str, *, root_url: str) -> HandshakeFailed:
    """Report a handshake that produced no assertion."""

    alert = t("devise.failure.handshake", reason=reason)
    context.flash("alert", alert)
    logger.warning("identity provider handshake failed: %s", reason)
    return HandshakeFailed(reason=reason, redirect_to=root_url, alert=alert)


__all__ = [
    "HandshakeFailed",
    "NeedsCompletion",
    "Outcome",
    "PROVIDERS",
    "Provider",
    "RequestContext",
    "SignedIn",
    "UnknownProvider",
    "get_provider",
    "handle_callback",
    "handle_failure",
    "sign_in_session",
    "sign_out_session",
]
