from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

SESSION_TYPE = "connect-session"


@dataclass(slots=True)
class SessionRecord:
    id: str
    expires: Optional[int]
    type: str = SESSION_TYPE
    session: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "SessionRecord":
        """Build a record from a deserialised DynamoDB item."""
        expires = item.get("expires")
        return cls(
            id=item["id"],
            expires=int(expires) if expires is not None else None,
            type=item.get("type", SESSION_TYPE),
            session=from_dynamo(item.get("session") or {}),
        )

    def to_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "expires": self.expires,
            "type": self.type,
            "session": self.session,
        }

    def is_expired(self, now_ms: int) -> bool:
        return self.expires is not None and now_ms >= self.expires


def from_dynamo(value: Any) -> Any:
    """Turn DynamoDB ``Decimal`` numbers back into ``int``/``float``."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: from_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_dynamo(item) for item in value]
    if isinstance(value, set):
        return {from_dynamo(item) for item in value}
    return value
