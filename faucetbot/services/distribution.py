from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from faucetbot.db.models import utcnow
from faucetbot.db.store import write_json_atomic
from faucetbot.services.ledger import RequestLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistributionExport:
    addresses: list[str]
    path: Path | None

    @property
    def count(self) -> int:
        return len(self.addresses)


async def export_distribution(ledger: RequestLedger, path: str | Path) -> DistributionExport:
    """Write the approved addresses, in approval order, for the disbursement script.

    Nothing is written when no request is approved.
    """
    addresses = ledger.build_distribution_list()
    if not addresses:
        return DistributionExport(addresses=[], path=None)

    target = Path(path)
    document = {
        "generatedAt": utcnow().isoformat(),
        "count": len(addresses),
        "addresses": addresses,
    }
    await asyncio.wait_for(asyncio.to_thread(write_json_atomic, target, document), timeout=ledger.io_timeout_sec)
    logger.info("distribution_exported", extra={"event": "distribution_exported", "count": len(addresses), "path": str(target)})
    return DistributionExport(addresses=addresses, path=target)
