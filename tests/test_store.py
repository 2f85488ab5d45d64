from __future__ import annotations

import json
from pathlib import Path

from faucetbot.db.models import LedgerState, RequestStatus, TokenRequest
from faucetbot.db.store import LedgerStore, write_json_atomic

WALLET = "0xAbCdEf0123456789abcdef0123456789ABCDEF01"


def _request(request_id: str = "req_1", user_id: int = 7, status: RequestStatus = RequestStatus.PENDING) -> TokenRequest:
    return TokenRequest(
        request_id=request_id,
        user_id=user_id,
        username="alice",
        display_name="Alice",
        wallet_address=WALLET,
        status=status,
    )


def _state_with(request: TokenRequest) -> LedgerState:
    state = LedgerState()
    state.requests[request.request_id] = request
    state.users[str(request.user_id)] = request
    state.wallets[request.canonical_wallet] = request
    return state


def test_missing_file_loads_empty_and_creates_dir(tmp_path: Path) -> None:
    store = LedgerStore(tmp_path / "nested" / "ledger.json")
    state = store.load()
    assert state.requests == {} and state.users == {} and state.wallets == {}
    assert (tmp_path / "nested").is_dir()
    assert not store.path.exists()


def test_corrupt_file_is_quarantined(tmp_path: Path) -> None:
    path = tmp_path / "ledger.json"
    path.write_text("{not json", encoding="utf-8")
    store = LedgerStore(path)

    state = store.load()

    assert state.requests == {}
    assert not path.exists()
    assert store.last_recovered_from is not None
    assert store.last_recovered_from.read_text(encoding="utf-8") == "{not json"
    assert store.last_recovered_from.name.startswith("ledger.json.corrupt-")


def test_non_object_document_is_quarantined(tmp_path: Path) -> None:
    path = tmp_path / "ledger.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    store = LedgerStore(path)
    assert store.load().requests == {}
    assert store.last_recovered_from is not None


def test_save_then_load_keeps_shared_identity(tmp_path: Path) -> None:
    store = LedgerStore(tmp_path / "ledger.json")
    assert store.save(_state_with(_request())).ok

    loaded = store.load()
    req = loaded.requests["req_1"]
    assert loaded.users["7"] is req
    assert loaded.wallets[WALLET.lower()] is req
    assert req.wallet_address == WALLET

    # a second load of the same file yields the same content
    assert store.load().to_document() == loaded.to_document()


def test_document_uses_camel_case_keys(tmp_path: Path) -> None:
    store = LedgerStore(tmp_path / "ledger.json")
    store.save(_state_with(_request()))
    document = json.loads(store.path.read_text(encoding="utf-8"))
    assert set(document) == {"requests", "users", "wallets", "approved", "rejected"}
    entry = document["requests"]["req_1"]
    assert entry["requestId"] == "req_1"
    assert entry["userId"] == 7
    assert entry["walletAddress"] == WALLET
    assert entry["status"] == "pending"


def test_legacy_document_without_key_fields(tmp_path: Path) -> None:
    path = tmp_path / "requests.json"
    legacy = {
        "requests": {
            "req_1722860000000_7": {
                "userId": 7,
                "username": "alice",
                "firstName": "Alice",
                "walletAddress": WALLET,
                "timestamp": "2025-08-05T12:33:00.000Z",
                "status": "pending",
            }
        },
        "users": {
            "7": {
                "requestId": "req_1722860000000_7",
                "username": "alice",
                "firstName": "Alice",
                "walletAddress": WALLET,
                "timestamp": "2025-08-05T12:33:00.000Z",
                "status": "pending",
            }
        },
        "wallets": {
            WALLET.lower(): {
                "requestId": "req_1722860000000_7",
                "userId": 7,
                "username": "alice",
                "firstName": "Alice",
                "timestamp": "2025-08-05T12:33:00.000Z",
                "status": "pending",
            }
        },
    }
    path.write_text(json.dumps(legacy), encoding="utf-8")

    state = LedgerStore(path).load()

    req = state.requests["req_1722860000000_7"]
    assert req.display_name == "Alice"
    assert req.submitted_at.year == 2025
    assert state.users["7"] is req
    assert state.wallets[WALLET.lower()] is req
    assert state.approved == {}


def test_write_json_atomic_replaces_whole_file(tmp_path: Path) -> None:
    path = tmp_path / "out.json"
    write_json_atomic(path, {"a": 1})
    write_json_atomic(path, {"b": 2})
    assert json.loads(path.read_text(encoding="utf-8")) == {"b": 2}
    assert [p.name for p in tmp_path.iterdir()] == ["out.json"]


def test_save_reports_unserializable_document(tmp_path: Path) -> None:
    store = LedgerStore(tmp_path / "ledger.json")
    result = store.save({"bad": object()})
    assert not result.ok
    assert result.error
    assert not store.path.exists()
    assert list(tmp_path.iterdir()) == []


def test_legacy_completed_status_reads_as_approved(tmp_path: Path) -> None:
    path = tmp_path / "requests.json"
    entry = {"userId": 7, "walletAddress": WALLET, "timestamp": "2025-08-05T12:33:00Z", "status": "completed"}
    path.write_text(json.dumps({"requests": {"req_1": entry}, "users": {}, "wallets": {}}), encoding="utf-8")

    store = LedgerStore(path)
    state = store.load()

    assert state.requests["req_1"].status == RequestStatus.APPROVED
    assert store.last_recovered_from is None
    assert state.approved["req_1"] is state.requests["req_1"]


def test_older_generation_never_overwrites_newer(tmp_path: Path) -> None:
    store = LedgerStore(tmp_path / "ledger.json")
    newer = _state_with(_request("req_2", user_id=8))

    assert store.save(newer, generation=3).ok
    # a save that timed out earlier finally gets the write lock
    assert store.save(_state_with(_request("req_1")), generation=2).ok

    document = json.loads(store.path.read_text(encoding="utf-8"))
    assert list(document["requests"]) == ["req_2"]

    assert store.save(_state_with(_request("req_3", user_id=9)), generation=4).ok
    assert list(json.loads(store.path.read_text(encoding="utf-8"))["requests"]) == ["req_3"]


def test_failed_write_does_not_advance_generation(tmp_path: Path) -> None:
    store = LedgerStore(tmp_path / "ledger.json")
    assert not store.save({"bad": object()}, generation=5).ok
    assert store.save(_state_with(_request()), generation=5).ok
    assert store.path.exists()
