# services/api/routers/deps.py
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from settings import Settings, get_settings


def get_storage(request: Request):
    """Document store configured at startup (app.state.storage_adapter)."""
    storage = getattr(request.app.state, "storage_adapter", None)
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Storage adapter not initialized",
        )
    return storage


# ---- DI aliases (no default value allowed) ----
Storage = Annotated[object, Depends(get_storage)]
AppSettings = Annotated[Settings, Depends(get_settings)]
