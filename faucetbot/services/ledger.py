from __future__ import annotations

import asyncio
import logging
import re
import uuid
from contextlib import suppress
from datetime import datetime
from typing import Any, Awaitable, Callable

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from faucetbot.db.models import LedgerState, RequestStatus, TokenRequest, canonical_wallet, utcnow
from faucetbot.db.store import LedgerStore, SaveResult
from faucetbot.services.errors import (
    DuplicateUserError,
    InvalidAddressError,
    InvalidTransitionError,
    PersistenceFailure,
    RequestNotFoundError,
    WalletReusedError,
)

logger = logging.getLogger(__name__)

WALLET_RE = re.compile(r"0x[0-9a-fA-F]{40}")
TERMINAL_TARGETS = {RequestStatus.APPROVED, RequestStatus.REJECTED}

SubmittedHook = Callable[[TokenRequest], Awaitable[None]]


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex}"


def is_valid_wallet(address: str) -> bool:
    return WALLET_RE.fullmatch((address or "").strip()) is not None


class RequestLedger:
    """Authoritative record of token-claim requests.

    Mutations (`submit`, `transition`) run one at a time under `_lock`: the
    invariant checks, the index writes and the save all happen inside the
    critical section. Index writes never straddle an `await`, so readers on the
    event loop always see the three indexes in agreement.

    A failed save leaves the in-memory state authoritative and flips the ledger
    into degraded mode; a background task keeps retrying the latest snapshot.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        io_timeout_sec: float = 5.0,
        retry_attempts: int = 5,
        retry_base_wait_sec: float = 1.0,
        retry_max_wait_sec: float = 60.0,
        on_submitted: SubmittedHook | None = None,
        id_factory: Callable[[], str] = new_request_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.io_timeout_sec = max(0.1, float(io_timeout_sec))
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_base_wait_sec = max(0.0, float(retry_base_wait_sec))
        self.retry_max_wait_sec = max(0.0, float(retry_max_wait_sec))
        self.on_submitted = on_submitted
        self._id_factory = id_factory
        self._clock = clock
        self._state = LedgerState()
        self._lock = asyncio.Lock()
        self._retry_task: asyncio.Task | None = None
        self.degraded = False
        self.last_persist_error: str | None = None
        # bumped under _lock for every snapshot handed to the store
        self._generation = 0

    async def open(self) -> None:
        state = await asyncio.wait_for(asyncio.to_thread(self.store.load), timeout=self.io_timeout_sec)
        async with self._lock:
            self._state = state
        logger.info(
            "ledger_opened",
            extra={
                "event": "ledger_opened",
                "path": str(self.store.path),
                "requests": len(state.requests),
                "recovered_from": str(self.store.last_recovered_from) if self.store.last_recovered_from else None,
            },
        )

    async def close(self) -> None:
        if self._retry_task is not None and not self._retry_task.done():
            self._retry_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._retry_task
        if self.degraded:
            async with self._lock:
                await self._persist_locked("shutdown", schedule_retry=False)

    # -- mutations -------------------------------------------------------

    async def submit(
        self,
        user_id: int,
        username: str | None,
        display_name: str,
        wallet_address: str,
    ) -> TokenRequest:
        address = (wallet_address or "").strip()
        if not is_valid_wallet(address):
            raise InvalidAddressError(address)

        async with self._lock:
            existing = self._state.users.get(str(user_id))
            if existing is not None:
                raise DuplicateUserError(existing.model_copy())

            canonical = canonical_wallet(address)
            holder = self._state.wallets.get(canonical)
            if holder is not None and holder.is_active:
                raise WalletReusedError(address, holder.model_copy())

            request = TokenRequest(
                request_id=self._id_factory(),
                user_id=int(user_id),
                username=username or None,
                display_name=display_name or "",
                wallet_address=address,
                submitted_at=self._clock(),
                status=RequestStatus.PENDING,
            )
            self._state.requests[request.request_id] = request
            self._state.users[str(request.user_id)] = request
            self._state.wallets[canonical] = request
            await self._persist_locked("submit")
            snapshot = request.model_copy()

        logger.info(
            "token_request_submitted",
            extra={"event": "token_request_submitted", "request_id": snapshot.request_id, "user_id": snapshot.user_id},
        )
        if self.on_submitted is not None:
            try:
                await self.on_submitted(snapshot)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "admin_notify_failed",
                    extra={"event": "admin_notify_failed", "request_id": snapshot.request_id, "error": str(exc)},
                )
        return snapshot

    async def transition(self, request_id: str, new_status: RequestStatus | str) -> TokenRequest:
        async with self._lock:
            request = self._state.requests.get(request_id)
            if request is None:
                raise RequestNotFoundError(request_id)
            try:
                target = RequestStatus(new_status)
            except ValueError:
                raise InvalidTransitionError(request.model_copy(), new_status) from None
            if target not in TERMINAL_TARGETS or request.status != RequestStatus.PENDING:
                raise InvalidTransitionError(request.model_copy(), target)

            now = self._clock()
            request.status = target
            if target == RequestStatus.APPROVED:
                request.approved_at = now
                self._state.approved[request.request_id] = request
            else:
                request.rejected_at = now
                self._state.rejected[request.request_id] = request
            await self._persist_locked("transition")
            snapshot = request.model_copy()

        logger.info(
            "request_transitioned",
            extra={"event": "request_transitioned", "request_id": request_id, "status": target.value},
        )
        return snapshot

    # -- reads -----------------------------------------------------------

    def get(self, request_id: str) -> TokenRequest | None:
        request = self._state.requests.get(request_id)
        return request.model_copy() if request is not None else None

    def find_by_user(self, user_id: int) -> TokenRequest | None:
        request = self._state.users.get(str(user_id))
        return request.model_copy() if request is not None else None

    def list_pending(self) -> list[TokenRequest]:
        return [r.model_copy() for r in self._state.requests.values() if r.status == RequestStatus.PENDING]

    def list_approved(self) -> list[TokenRequest]:
        return [r.model_copy() for r in self._state.approved.values() if r.status == RequestStatus.APPROVED]

    def list_rejected(self) -> list[TokenRequest]:
        return [r.model_copy() for r in self._state.rejected.values() if r.status == RequestStatus.REJECTED]

    def build_distribution_list(self) -> list[str]:
        return [r.wallet_address for r in self.list_approved()]

    def stats(self) -> dict[str, Any]:
        counts = {status.value: 0 for status in RequestStatus}
        for request in self._state.requests.values():
            counts[request.status.value] += 1
        return {"total": len(self._state.requests), **counts, "degraded": self.degraded}

    # -- persistence -----------------------------------------------------

    def _snapshot_locked(self) -> tuple[int, dict[str, Any]]:
        self._generation += 1
        return self._generation, self._state.to_document()

    async def _write(self, generation: int, document: dict[str, Any]) -> SaveResult:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.store.save, document, generation=generation),
                timeout=self.io_timeout_sec,
            )
        except asyncio.TimeoutError:
            return SaveResult(ok=False, error=f"save timed out after {self.io_timeout_sec:.1f}s")

    async def _persist_locked(self, reason: str, *, schedule_retry: bool = True) -> SaveResult:
        # serialize on the loop while the lock is held; the worker thread only sees plain dicts
        result = await self._write(*self._snapshot_locked())
        if result.ok:
            if self.degraded:
                logger.info("ledger_persist_recovered", extra={"event": "ledger_persist_recovered", "reason": reason})
            self.degraded = False
            self.last_persist_error = None
            return result

        self.degraded = True
        self.last_persist_error = result.error
        logger.error(
            "ledger_persist_failed",
            extra={"event": "ledger_persist_failed", "reason": reason, "error": result.error, "path": str(self.store.path)},
        )
        if schedule_retry:
            self._schedule_retry()
        return result

    def _schedule_retry(self) -> None:
        if self._retry_task is not None and not self._retry_task.done():
            return
        self._retry_task = asyncio.create_task(self._retry_persist())

    async def _retry_persist(self) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_base_wait_sec, max=self.retry_max_wait_sec),
            retry=retry_if_exception_type(PersistenceFailure),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    async with self._lock:
                        if not self.degraded:
                            return
                        result = await self._write(*self._snapshot_locked())
                        if not result.ok:
                            self.last_persist_error = result.error
                            raise PersistenceFailure(result.error or "save failed")
                        self.degraded = False
                        self.last_persist_error = None
                        logger.info("ledger_persist_recovered", extra={"event": "ledger_persist_recovered", "reason": "retry"})
        except PersistenceFailure as exc:
            logger.error(
                "ledger_persist_gave_up",
                extra={"event": "ledger_persist_gave_up", "attempts": self.retry_attempts, "error": str(exc)},
            )

    async def wait_persisted(self) -> bool:
        """Wait for a pending background retry; True when disk matches memory."""
        task = self._retry_task
        if task is not None and not task.done():
            await task
        return not self.degraded
