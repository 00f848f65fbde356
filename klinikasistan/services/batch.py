"""BatchRunner: run one async job per item, continuing past failures."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_SENT = "sent"
STATUS_FAILED = "failed"


@dataclass
class BatchReport:
    sent: int = 0
    failed: int = 0
    details: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"sent": self.sent, "failed": self.failed, "details": list(self.details)}


class BatchRunner(Generic[T]):
    """Process items in input order.

    ``concurrency=1`` (the default) is strictly sequential. Larger values run
    up to that many jobs at once; the report keeps input order either way.
    """

    def __init__(self, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency!r}")
        self._concurrency = concurrency

    async def run(
        self,
        items: Sequence[T],
        job: Callable[[T], Awaitable[Any]],
        *,
        label: Optional[Callable[[T], str]] = None,
    ) -> BatchReport:
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(item: T) -> Dict[str, Any]:
            name = label(item) if label else str(item)
            async with semaphore:
                try:
                    await job(item)
                except Exception as exc:
                    logger.exception("BatchRunner: job failed for %s", name)
                    return {"name": name, "status": STATUS_FAILED, "error": str(exc)}
            return {"name": name, "status": STATUS_SENT}

        if self._concurrency == 1:
            outcomes = [await _one(item) for item in items]
        else:
            outcomes = list(await asyncio.gather(*(_one(item) for item in items)))

        report = BatchReport(details=outcomes)
        report.sent = sum(1 for o in outcomes if o["status"] == STATUS_SENT)
        report.failed = len(outcomes) - report.sent
        logger.info("BatchRunner: %d sent, %d failed", report.sent, report.failed)
        return report
