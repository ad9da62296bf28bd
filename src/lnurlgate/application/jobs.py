"""Background jobs: settlement reconciliation and expiry cleanup."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from ..domain.entities import utcnow
from ..domain.errors import UpstreamError
from ..domain.node_clients import LightningNodeClientProtocol
from ..domain.repositories import (
    AuthSessionRepository,
    ChallengeRepository,
    InvoiceRecordRepository,
    TransitionStatus,
)

logger = logging.getLogger(__name__)


class SettlementReconciler:
    """Marks unpaid invoice records paid once the node reports them settled.

    Paid records never revert; a pass over records that are already paid
    changes nothing.
    """

    def __init__(
        self,
        invoice_repository: InvoiceRecordRepository,
        lightning: LightningNodeClientProtocol,
        max_age_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.invoice_repository = invoice_repository
        self.lightning = lightning
        self.max_age = timedelta(seconds=max_age_seconds) if max_age_seconds else None
        self.clock = clock

    async def run_once(self) -> int:
        """One reconciliation pass. Returns how many records were marked paid."""
        marked = 0
        now = self.clock()
        for record in await self.invoice_repository.get_unpaid():
            if self.max_age is not None and now - record.created_at > self.max_age:
                continue
            try:
                status = await self.lightning.get_invoice_status(record.payment_hash)
                if not status.settled:
                    continue
                result, _ = await self.invoice_repository.mark_paid(record.id, self.clock())
            except UpstreamError as e:
                logger.warning("Could not check invoice %s: %s", record.id, e.reason)
                continue
            except Exception:
                logger.exception("Error reconciling invoice %s", record.id)
                continue
            if result == TransitionStatus.APPLIED:
                marked += 1
                logger.info(
                    "Invoice %s settled: %d sats for %s",
                    record.id,
                    record.amount_sats,
                    record.payment_id,
                )
        return marked


class SessionCleanup:
    """Deletes expired auth challenges and auth sessions."""

    def __init__(
        self,
        challenge_repository: ChallengeRepository,
        session_repository: AuthSessionRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.challenge_repository = challenge_repository
        self.session_repository = session_repository
        self.clock = clock

    async def run_once(self) -> tuple[int, int]:
        """Returns (challenges deleted, sessions deleted)."""
        now = self.clock()
        challenges = await self.challenge_repository.delete_expired(now)
        sessions = await self.session_repository.delete_expired(now)
        if challenges or sessions:
            logger.info(
                "Cleaned up %d expired auth challenges and %d sessions",
                challenges,
                sessions,
            )
        return challenges, sessions


class PeriodicJob:
    """Runs ``func`` every ``interval_seconds`` on its own task until stopped."""

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        interval_seconds: float,
    ):
        self.name = name
        self._func = func
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.warning("%s is already running", self.name)
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info("%s started (every %ss)", self.name, self.interval_seconds)

    async def _run(self) -> None:
        while True:
            try:
                await self._func()
            except Exception:
                # One failed pass must not end the loop
                logger.exception("%s pass failed", self.name)
            await asyncio.sleep(self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("%s stopped", self.name)


class BackgroundJobs:
    """Both periodic jobs, started and stopped with the application."""

    def __init__(
        self,
        reconciler: SettlementReconciler,
        cleanup: SessionCleanup,
        payment_check_interval_seconds: float = 10.0,
        cleanup_interval_seconds: float = 60.0,
    ):
        self.jobs = [
            PeriodicJob(
                "settlement-reconciler",
                reconciler.run_once,
                payment_check_interval_seconds,
            ),
            PeriodicJob("session-cleanup", cleanup.run_once, cleanup_interval_seconds),
        ]

    def start(self) -> None:
        for job in self.jobs:
            job.start()

    async def stop(self) -> None:
        await asyncio.gather(*(job.stop() for job in self.jobs))
