"""Domain enumerations and state-transition rules."""

from __future__ import annotations

import enum
from typing import Any, Mapping


class UserType(str, enum.Enum):
    CLIENT = "client"
    OWNER = "owner"
    ADMIN = "admin"


class StoreStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @classmethod
    def from_legacy(cls, record: Mapping[str, Any]) -> "StoreStatus":
        """Map a record using ``status``, ``state`` or ``approved`` onto the enum.

        ``status`` wins over ``state``; a bare ``approved: true`` means
        accepted.  Unknown values fall back to pending.
        """
        for key in ("status", "state"):
            value = record.get(key)
            if value is None:
                continue
            try:
                return cls(str(getattr(value, "value", value)).lower())
            except ValueError:
                continue
        if record.get("approved") is True:
            return cls.ACCEPTED
        return cls.PENDING


# State machine: maps current status -> set of valid next statuses
STORE_TRANSITIONS: dict[StoreStatus, set[StoreStatus]] = {
    StoreStatus.PENDING: {StoreStatus.ACCEPTED, StoreStatus.DECLINED},
    StoreStatus.ACCEPTED: {StoreStatus.DECLINED},
    StoreStatus.DECLINED: {StoreStatus.PENDING, StoreStatus.ACCEPTED},
}
