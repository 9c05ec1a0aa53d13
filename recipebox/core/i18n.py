"""Message catalog for user-facing notices and alerts."""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping

MESSAGES: Dict[str, str] = {
    "devise.omniauth_callbacks.success": "Successfully authenticated from %{kind} account.",
    "devise.failure.handshake": "Authentication failed: %{reason}",
    "devise.failure.invalid": "Invalid email or password.",
    "devise.sessions.signed_in": "Signed in successfully.",
    "devise.sessions.signed_out": "Signed out successfully.",
    "devise.registrations.signed_up": "Welcome! You have signed up successfully.",
}

_PLACEHOLDER = re.compile(r"%\{(\w+)\}")


def t(key: str, catalog: Mapping[str, str] = MESSAGES, **params: Any) -> str:
    """Look up ``key`` and interpolate ``%{name}`` placeholders.

    Unknown keys yield ``"translation missing: <key>"``; a placeholder without
    a matching keyword argument raises ``KeyError``.
    """

    template = catalog.get(key)
    if template is None:
        return f"translation missing: {key}"
    return _PLACEHOLDER.sub(lambda match: str(params[match.group(1)]), template)


__all__ = ["MESSAGES", "t"]
