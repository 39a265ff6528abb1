from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_session_store
from .schemas import DeleteResponse, ReapResponse, SessionResponse
from .store import DynamoDBSessionStore

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("/reap", response_model=ReapResponse)
async def reap_sessions(
    store: DynamoDBSessionStore = Depends(get_session_store),
) -> ReapResponse:
    reaped = await store.reap()
    return ReapResponse(reaped=reaped)


@router.get("/{sid}", response_model=SessionResponse)
async def get_session(
    sid: str,
    store: DynamoDBSessionStore = Depends(get_session_store),
) -> SessionResponse:
    session = await store.get(sid)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return SessionResponse(sid=sid, session=session)


@router.delete("/{sid}", response_model=DeleteResponse)
async def delete_session(
    sid: str,
    store: DynamoDBSessionStore = Depends(get_session_store),
) -> DeleteResponse:
    await store.destroy(sid)
    return DeleteResponse(success=True)
