"""Minimal controller loop driving the reconciler.

Plays the part of the scheduler: invokes reconciliation for every known
resource, retries failures with exponential backoff and never runs two
reconciliations for the same resource at once.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from hydra_maester.config import Settings
from hydra_maester.controller.reconciler import OAuth2ClientReconciler, is_terminal
from hydra_maester.models import ResourceKey
from hydra_maester.store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileOutcome:
    """Final result of driving one resource."""

    key: ResourceKey
    success: bool
    attempts: int
    error: str | None = None


class Controller:
    def __init__(
        self,
        reconciler: OAuth2ClientReconciler,
        resources: ResourceStore,
        max_concurrent: int = 1,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        max_retries: int = 5,
        resync_interval: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._reconciler = reconciler
        self._resources = resources
        self._max_concurrent = max(1, max_concurrent)
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._max_retries = max_retries
        self._resync_interval = resync_interval
        self._sleep = sleep
        self._locks: defaultdict[ResourceKey, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(
        cls,
        reconciler: OAuth2ClientReconciler,
        resources: ResourceStore,
        settings: Settings,
    ) -> "Controller":
        return cls(
            reconciler,
            resources,
            max_concurrent=settings.max_concurrent_reconciles,
            base_delay=settings.requeue_base_delay,
            max_delay=settings.requeue_max_delay,
            max_retries=settings.max_retries,
            resync_interval=settings.resync_interval,
        )

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        return min(self._base_delay * (2**attempt), self._max_delay)

    async def reconcile_key(self, key: ResourceKey) -> ReconcileOutcome:
        """Reconcile one resource until it succeeds, fails terminally or retries run out."""
        async with self._locks[key]:
            attempt = 0
            while True:
                attempt += 1
                try:
                    result = await self._reconciler.reconcile(key)
                except Exception as e:
                    if is_terminal(e):
                        logger.error("Not retrying %s: %s", key, e)
                        return ReconcileOutcome(key, success=False, attempts=attempt, error=str(e))
                    if attempt > self._max_retries:
                        logger.error("Giving up on %s after %d attempts: %s", key, attempt, e)
                        return ReconcileOutcome(key, success=False, attempts=attempt, error=str(e))
                    delay = self.backoff(attempt - 1)
                    logger.warning("Reconciling %s failed (%s), retrying in %.1fs", key, e, delay)
                    await self._sleep(delay)
                    continue

                if not (result.requeue or result.requeue_after):
                    return ReconcileOutcome(key, success=True, attempts=attempt)

                if attempt > self._max_retries:
                    return ReconcileOutcome(
                        key, success=False, attempts=attempt, error="requeue limit reached"
                    )
                delay = result.requeue_after or self.backoff(attempt - 1)
                logger.debug("Requeueing %s in %.1fs", key, delay)
                await self._sleep(delay)

    async def run_once(self) -> dict[ResourceKey, ReconcileOutcome]:
        """Reconcile every resource currently in the store."""
        keys = await self._resources.list_keys()
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _bounded(key: ResourceKey) -> ReconcileOutcome:
            async with semaphore:
                return await self.reconcile_key(key)

        outcomes = await asyncio.gather(*(_bounded(key) for key in keys))
        return {outcome.key: outcome for outcome in outcomes}

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Resync all resources every ``resync_interval`` until ``stop`` is set."""
        while not stop.is_set():
            outcomes = await self.run_once()
            failed = [str(k) for k, o in outcomes.items() if not o.success]
            if failed:
                logger.warning("Reconciliation failed for: %s", ", ".join(failed))
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._resync_interval)
            except asyncio.TimeoutError:
                pass
