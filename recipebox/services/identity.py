"""Map verified external identities onto local accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from sqlmodel import Session

from ..models import Account
from .accounts import Resolution, find_by_identity, save_account

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityAssertion:
    """Identity facts returned by a provider after a successful handshake."""

    provider: str
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_auth_hash(cls, data: Mapping[str, Any]) -> "IdentityAssertion":
        """Build from ``{provider, uid, info: {email, name, image}, extra}``."""

        info = data.get("info") or {}
        return cls(
            provider=str(data.get("provider") or ""),
            uid=str(data.get("uid") or ""),
            email=info.get("email"),
            name=info.get("name"),
            image=info.get("image"),
            extra=dict(data.get("extra") or {}),
        )

    def to_session_data(self) -> Dict[str, Any]:
        """The auth hash without its ``extra`` payload, safe to keep in a cookie."""

        return {
            "provider": self.provider,
            "uid": self.uid,
            "info": {"email": self.email, "name": self.name, "image": self.image},
        }


def assertion_from_userinfo(provider: str, userinfo: Mapping[str, Any]) -> IdentityAssertion:
    """Translate OpenID Connect userinfo claims into an assertion."""

    claims = dict(userinfo)
    sub = claims.pop("sub", None)
    return IdentityAssertion(
        provider=provider,
        uid=str(sub) if sub is not None else "",
        email=claims.pop("email", None),
        name=claims.pop("name", None),
        image=claims.pop("picture", None),
        extra=claims,
    )


def resolve(session: Session, assertion: IdentityAssertion) -> Resolution:
    """Find the account for ``assertion`` or create it.

    An existing account is returned as stored; its profile is not refreshed
    from the provider. A new account that fails validation comes back
    unpersisted with its error messages instead of raising.
    """

    if not assertion.provider or not assertion.uid:
        raise ValueError("assertion must carry a provider and uid")

    account = find_by_identity(session, assertion.provider, assertion.uid)
    if account is not None:
        return Resolution(account=account, persisted=True)

    account = Account(
        provider=assertion.provider,
        uid=assertion.uid,
        email=assertion.email or "",
        name=assertion.name,
        avatar_url=assertion.image,
    )
    errors = save_account(session, account)
    if errors:
        logger.info(
            "could not create account for %s identity: %s",
            assertion.provider,
            "; ".join(errors),
        )
        return Resolution(account=account, errors=errors)

    logger.info("created account %s from %s", account.id, assertion.provider)
    return Resolution(account=account, persisted=True, created=True)


__all__ = ["IdentityAssertion", "assertion_from_userinfo", "resolve"]
