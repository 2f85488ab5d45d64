from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# the first bot generation marked paid-out requests "completed"
LEGACY_STATUSES = {"completed": "approved"}


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId")
    user_id: int = Field(alias="userId")
    username: str | None = None
    display_name: str = Field(default="", alias="displayName")
    wallet_address: str = Field(alias="walletAddress")
    submitted_at: datetime = Field(default_factory=utcnow, alias="submittedAt")
    status: RequestStatus = RequestStatus.PENDING
    approved_at: datetime | None = Field(default=None, alias="approvedAt")
    rejected_at: datetime | None = Field(default=None, alias="rejectedAt")

    @model_validator(mode="before")
    @classmethod
    def _legacy_fields(cls, data: Any) -> Any:
        # documents written by the first bot generation used firstName/timestamp
        if isinstance(data, dict):
            data = dict(data)
            if "displayName" not in data and "firstName" in data:
                data["displayName"] = data.pop("firstName") or ""
            if "submittedAt" not in data and "timestamp" in data:
                data["submittedAt"] = data.pop("timestamp")
            if data.get("status") in LEGACY_STATUSES:
                data["status"] = LEGACY_STATUSES[data["status"]]
        return data

    @property
    def canonical_wallet(self) -> str:
        return canonical_wallet(self.wallet_address)

    @property
    def is_active(self) -> bool:
        return self.status != RequestStatus.REJECTED


def canonical_wallet(address: str) -> str:
    return address.strip().lower()


class LedgerState(BaseModel):
    """Persisted document. Keys are strings because the file is JSON."""

    requests: dict[str, TokenRequest] = Field(default_factory=dict)
    users: dict[str, TokenRequest] = Field(default_factory=dict)
    wallets: dict[str, TokenRequest] = Field(default_factory=dict)
    approved: dict[str, TokenRequest] = Field(default_factory=dict)
    rejected: dict[str, TokenRequest] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fill_from_keys(cls, data: Any) -> Any:
        # older documents left the map key out of the value it indexes
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, key_field in (
            ("requests", "requestId"),
            ("approved", "requestId"),
            ("rejected", "requestId"),
            ("users", "userId"),
            ("wallets", "walletAddress"),
        ):
            index = data.get(name)
            if not isinstance(index, dict):
                continue
            filled = {}
            for key, value in index.items():
                if isinstance(value, dict) and key_field not in value:
                    value = {**value, key_field: key}
                filled[key] = value
            data[name] = filled
        return data

    def relink(self) -> LedgerState:
        """Point every index entry at the canonical object in `requests`.

        After a JSON round-trip each index holds its own copy; relinking makes a
        single status assignment visible through every index at once. Index
        entries whose request id is unknown are promoted into `requests`.

        Decided requests missing from `approved` / `rejected` (documents from
        before those collections existed) are appended in decision order.
        """
        for index in (self.users, self.wallets, self.approved, self.rejected):
            for key, item in list(index.items()):
                canonical = self.requests.setdefault(item.request_id, item)
                index[key] = canonical
        self._backfill(self.approved, RequestStatus.APPROVED, "approved_at")
        self._backfill(self.rejected, RequestStatus.REJECTED, "rejected_at")
        return self

    def _backfill(self, collection: dict[str, TokenRequest], status: RequestStatus, stamp_field: str) -> None:
        missing = [r for r in self.requests.values() if r.status == status and r.request_id not in collection]
        missing.sort(key=lambda r: getattr(r, stamp_field) or r.submitted_at)
        for request in missing:
            collection[request.request_id] = request

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
