"""Service layer helpers."""

from .accounts import Resolution, authenticate, register_account, save_account
from .callbacks import (
    HandshakeFailed,
    NeedsCompletion,
    RequestContext,
    SignedIn,
    get_provider,
    handle_callback,
    handle_failure,
)
from .identity import IdentityAssertion, assertion_from_userinfo, resolve

__all__ = [
    "HandshakeFailed",
    "IdentityAssertion",
    "NeedsCompletion",
    "RequestContext",
    "Resolution",
    "SignedIn",
    "assertion_from_userinfo",
    "authenticate",
    "get_provider",
    "handle_callback",
    "handle_failure",
    "register_account",
    "resolve",
    "save_account",
]
