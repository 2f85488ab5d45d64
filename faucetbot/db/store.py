from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from faucetbot.db.models import LedgerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    error: str | None = None


def write_json_atomic(path: Path, document: Any) -> None:
    """Write `document` so that readers see either the old or the new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(document, fh, ensure_ascii=False, indent=2)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with suppress(OSError):
            os.unlink(tmp_name)
        raise


class LedgerStore:
    """Flat JSON record store for the request ledger.

    `load` never raises: a missing file yields an empty state, a corrupt one is
    moved aside (see `last_recovered_from`) before an empty state is returned.
    `save` never raises for I/O problems either; it reports through `SaveResult`.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        # a timed-out save keeps running in its thread; the generation check stops it
        # from landing over a newer snapshot written in the meantime
        self._write_lock = threading.Lock()
        self._last_generation = 0
        self.last_recovered_from: Path | None = None

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> LedgerState:
        try:
            self._ensure_dir()
        except OSError as exc:
            logger.error("ledger_dir_unavailable", extra={"event": "ledger_dir_unavailable", "path": str(self.path.parent), "error": str(exc)})
            return LedgerState()

        if not self.path.exists():
            return LedgerState()

        try:
            raw = self.path.read_text(encoding="utf-8")
            document = json.loads(raw)
            if not isinstance(document, dict):
                raise ValueError("ledger document is not an object")
            return LedgerState.model_validate(document).relink()
        except (OSError, ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError
            self._quarantine(exc)
            return LedgerState()

    def _quarantine(self, exc: Exception) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, target)
        except OSError as move_exc:
            logger.error(
                "ledger_corrupt_unmovable",
                extra={"event": "ledger_corrupt_unmovable", "path": str(self.path), "error": str(exc), "move_error": str(move_exc)},
            )
            return
        self.last_recovered_from = target
        logger.error(
            "ledger_corrupt_quarantined",
            extra={"event": "ledger_corrupt_quarantined", "path": str(self.path), "moved_to": str(target), "error": str(exc)},
        )

    def save(self, state: LedgerState | dict[str, Any], generation: int | None = None) -> SaveResult:
        """Write `state`. A `generation` at or below the last one written is skipped:
        the file already holds a newer snapshot than the caller's."""
        document = state.to_document() if isinstance(state, LedgerState) else state
        try:
            with self._write_lock:
                if generation is not None and generation <= self._last_generation:
                    logger.info(
                        "ledger_save_superseded",
                        extra={"event": "ledger_save_superseded", "generation": generation, "written": self._last_generation},
                    )
                    return SaveResult(ok=True)
                write_json_atomic(self.path, document)
                if generation is not None:
                    self._last_generation = generation
        except (OSError, TypeError, ValueError) as exc:
            logger.error("ledger_save_failed", extra={"event": "ledger_save_failed", "path": str(self.path), "error": str(exc)})
            return SaveResult(ok=False, error=str(exc))
        return SaveResult(ok=True)
