from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Operations a session middleware needs from its persistence backend."""

    async def get(self, sid: str) -> Optional[dict[str, Any]]:
        """Return the session payload, or None if missing or expired."""
        ...

    async def set(self, sid: str, session: Mapping[str, Any]) -> None:
        """Store the session, replacing any previous record."""
        ...

    async def touch(self, sid: str, session: Mapping[str, Any]) -> bool:
        """Push the expiry forward without rewriting the payload."""
        ...

    async def destroy(self, sid: str) -> None:
        """Delete the session."""
        ...
