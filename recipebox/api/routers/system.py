"""System-level API endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from ...core import FRONTEND_ORIGIN, llm_settings
from ...oauth_client import identity_provider
from ...services.callbacks import PROVIDERS

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness probe."""

    return {"ok": True}


@router.get("/config")
def get_config() -> Dict[str, Any]:
    """Expose frontend configuration values."""

    llm = llm_settings()
    return {
        "frontend_origin": FRONTEND_ORIGIN,
        "providers": [
            {
                "key": provider.key,
                "label": provider.label,
                "configured": identity_provider.is_configured(provider),
            }
            for provider in PROVIDERS.values()
        ],
        "llm": {
            "default_model": llm.default_model,
            "providers": list(llm.configured_providers),
        },
    }


__all__ = ["router"]
