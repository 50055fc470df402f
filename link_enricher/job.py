"""Guarded bulk description enrichment.

The job walks the links that had no description when the run started, asks
the provider for one description at a time and hands every success back to
the caller as a complete snapshot so it can be persisted straight away.
Stopping is cooperative: the flag is read only before an item starts, so an
in-flight request always finishes and a successful result is still applied.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Protocol

from attrs import Factory, define

from .models import (
    EnrichmentReport,
    ItemFailure,
    JobOutcome,
    JobProgress,
    JobState,
    LinkItem,
)
from .provider import ProviderError

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterable, Sequence

    from .models import ProviderConfig

LOGGER = logging.getLogger(__name__)


class DescriptionProvider(Protocol):
    """Anything that can turn a title and URL into a description."""

    def generate(self, title: str, url: str, config: ProviderConfig) -> str: ...


@define(slots=True)
class CancellationFlag:
    """Advisory stop signal shared between the caller and a running job."""

    _event: threading.Event = Factory(threading.Event)

    def set(self) -> None:
        """Request a stop. Setting it again has no further effect."""
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()


def eligible_items(items: Iterable[LinkItem]) -> list[LinkItem]:
    """Links lacking a description, in their original order."""
    return [item for item in items if item.needs_description]


class EnrichmentJob:
    """One run of the bulk description generator.

    Create a fresh instance per run. ``run`` blocks until every eligible link
    has been processed or a stop has been observed.
    """

    def __init__(self, provider_client: DescriptionProvider) -> None:
        self._provider = provider_client
        self._stop = CancellationFlag()
        self._state = JobState.IDLE
        # Reentrant: request_stop may run in a signal handler on the thread
        # that already holds the lock inside run.
        self._lock = threading.RLock()

    @property
    def state(self) -> JobState:
        return self._state

    def request_stop(self) -> None:
        """Ask the run to stop before its next item; safe from any thread."""
        self._stop.set()
        with self._lock:
            if self._state is JobState.RUNNING:
                self._state = JobState.STOPPING
                LOGGER.info("Stop requested; finishing the current item first")

    def _should_stop(self, is_cancelled: Callable[[], bool] | None) -> bool:
        if self._stop.is_set():
            return True
        return bool(is_cancelled is not None and is_cancelled())

    def run(
        self,
        items: Sequence[LinkItem],
        config: ProviderConfig,
        on_progress: Callable[[int, int], None] | None = None,
        on_partial_result: Callable[[list[LinkItem]], None] | None = None,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> EnrichmentReport:
        """Generate descriptions for every link that lacks one.

        Args:
            items: Snapshot of the link collection. Only read at start.
            config: Provider settings, used unchanged for the whole run.
            on_progress: Called with ``(current, total)`` after every item,
                whether the provider succeeded or not.
            on_partial_result: Called with the full working copy after every
                successful generation. Exceptions it raises are not caught and
                end the run.
            is_cancelled: Polled before each item starts.

        Returns:
            A report whose outcome tells the caller whether the run completed,
            was cancelled, or never started because of a precondition.

        """
        working: list[LinkItem] = list(items)
        targets = eligible_items(working)

        if not config.has_credentials:
            LOGGER.info("No API key configured; not starting description generation")
            return EnrichmentReport(JobOutcome.MISSING_API_KEY, JobProgress(total=0), working)
        if not targets:
            LOGGER.info("All %d links already have a description", len(working))
            return EnrichmentReport(JobOutcome.NO_ELIGIBLE_ITEMS, JobProgress(total=0), working)

        positions = {item.id: idx for idx, item in enumerate(working)}
        report = EnrichmentReport(JobOutcome.COMPLETED, JobProgress(total=len(targets)), working)
        with self._lock:
            self._state = JobState.STOPPING if self._stop.is_set() else JobState.RUNNING
        LOGGER.info(
            "Generating descriptions for %d of %d links with %s model %s",
            len(targets),
            len(working),
            config.provider.value,
            config.effective_model,
        )

        try:
            for target in targets:
                if self._should_stop(is_cancelled):
                    report.outcome = JobOutcome.CANCELLED
                    LOGGER.info(
                        "Stopped after %d/%d links", report.progress.current, report.progress.total,
                    )
                    break
                self._process(target, config, working, positions, report, on_partial_result)
                current = report.progress.advance()
                if on_progress is not None:
                    on_progress(current, report.progress.total)
        finally:
            with self._lock:
                self._state = JobState.IDLE

        LOGGER.info(
            "Description generation %s: %d generated, %d failed",
            report.outcome.value,
            len(report.succeeded),
            len(report.failures),
        )
        return report

    def _process(
        self,
        target: LinkItem,
        config: ProviderConfig,
        working: list[LinkItem],
        positions: dict[str, int],
        report: EnrichmentReport,
        on_partial_result: Callable[[list[LinkItem]], None] | None,
    ) -> None:
        try:
            description = self._provider.generate(target.title, target.url, config)
        except ProviderError as exc:
            LOGGER.warning("Failed to generate description for %s (%s): %s", target.title, target.url, exc)
            report.failures.append(ItemFailure(item_id=target.id, title=target.title, error=str(exc)))
            return

        idx = positions[target.id]
        working[idx] = working[idx].with_description(description)
        report.succeeded.append(target.id)
        LOGGER.debug("Generated description for %s", target.url)
        if on_partial_result is not None:
            on_partial_result(list(working))
