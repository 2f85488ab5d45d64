from __future__ import annotations

from faucetbot.db.models import RequestStatus, TokenRequest


class LedgerError(Exception):
    """Recoverable ledger failure. The ledger state is unchanged when raised."""

    kind = "ledger_error"


class InvalidAddressError(LedgerError):
    kind = "invalid_address"

    def __init__(self, address: str) -> None:
        super().__init__(f"not a 0x-prefixed 40 hex character address: {address!r}")
        self.address = address


class DuplicateUserError(LedgerError):
    kind = "duplicate_user"

    def __init__(self, existing: TokenRequest) -> None:
        super().__init__(f"user {existing.user_id} already has request {existing.request_id} ({existing.status.value})")
        self.existing = existing


class WalletReusedError(LedgerError):
    kind = "wallet_reused"

    def __init__(self, address: str, existing: TokenRequest) -> None:
        super().__init__(f"wallet {address} already attached to request {existing.request_id}")
        self.address = address
        self.existing = existing


class RequestNotFoundError(LedgerError):
    kind = "not_found"

    def __init__(self, request_id: str) -> None:
        super().__init__(f"no request with id {request_id!r}")
        self.request_id = request_id


class InvalidTransitionError(LedgerError):
    kind = "invalid_transition"

    def __init__(self, request: TokenRequest, target: RequestStatus | str) -> None:
        target_value = target.value if isinstance(target, RequestStatus) else str(target)
        super().__init__(f"cannot move {request.request_id} from {request.status.value} to {target_value}")
        self.request = request
        self.target = target_value


class PersistenceFailure(Exception):
    """Raised internally while retrying a failed save; never reaches users."""
