"""
Bounded-concurrency catch-up.

The EnrichmentScheduler documents historical commit groups by asking a
rationale generator for what/why/how text and writing one entry per group
through the Ledger. Each group is an independent unit of work: one
generator call, then on success one write.

Groups run on a fixed-size thread pool. A failing group does not stop the
others; failures are collected and the first one observed is surfaced,
while entries written by successful groups stay persisted.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Protocol

from devledger.core.catchup.generator import (
    CATCHUP_SYSTEM_PROMPT,
    RationaleGenerator,
    build_catchup_prompt,
    parse_rationale,
)
from devledger.core.errors import LedgerError, LedgerSystemError, UserError
from devledger.core.ledger.grouping import CommitGroup
from devledger.core.ledger.models import Summary
from devledger.core.ledger.service import Ledger, build_group_entry

logger = logging.getLogger(__name__)

DEFAULT_PARALLEL = 5


class SchedulerCallback(Protocol):
    """Protocol for catch-up progress callbacks."""

    def on_start(self, num_groups: int, num_workers: int) -> None:
        """Called once before any group is submitted."""
        ...

    def on_group_complete(self, ref: CatchupEntryRef) -> None:
        """Called when a group produced an entry."""
        ...

    def on_group_failed(self, failure: GroupFailure) -> None:
        """Called when a group failed."""
        ...


class _NoOpCallback:
    def on_start(self, num_groups: int, num_workers: int) -> None:
        pass

    def on_group_complete(self, ref: CatchupEntryRef) -> None:
        pass

    def on_group_failed(self, failure: GroupFailure) -> None:
        pass


@dataclass
class CatchupEntryRef:
    """
    An entry produced by catch-up.

    Attributes:
        id: Entry ID
        anchor: Anchor commit SHA
        group_key: Key of the group the entry documents
        summary: Generated what/why/how
    """

    id: str
    anchor: str
    group_key: str
    summary: Summary


@dataclass
class GroupFailure:
    """A group that produced no entry."""

    group_key: str
    error: LedgerError


@dataclass
class CatchupResult:
    """
    Aggregate result of a catch-up run.

    Attributes:
        entries: Entries created (or previewed, for a dry run) in completion order
        failures: Failed groups in the order they were observed
        skipped: Keys of groups not started because the run was cancelled
        dry_run: Whether anything was persisted
    """

    entries: list[CatchupEntryRef] = field(default_factory=list)
    failures: list[GroupFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def first_error(self) -> LedgerError | None:
        return self.failures[0].error if self.failures else None

    def raise_for_failure(self) -> None:
        """Raise the first observed failure, if any."""
        if self.failures:
            raise self.failures[0].error


class _Cancelled(Exception):
    """Internal marker for a group skipped by cancellation."""


class EnrichmentScheduler:
    """
    Run catch-up over commit groups with bounded concurrency.

    Example:
        >>> scheduler = EnrichmentScheduler(ledger, ClaudeCLIGenerator(), parallel=2)
        >>> result = scheduler.run(group_commits(pending.commits))
        >>> print(f"Created {len(result.entries)} entries")
        >>> result.raise_for_failure()
    """

    def __init__(
        self,
        ledger: Ledger,
        generator: RationaleGenerator,
        parallel: int = DEFAULT_PARALLEL,
        dry_run: bool = False,
        tags: list[str] | tuple[str, ...] = (),
        cancel_event: threading.Event | None = None,
        callback: SchedulerCallback | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            ledger: Ledger entries are written to
            generator: Produces what/why/how text for a group
            parallel: Maximum number of groups in flight
            dry_run: Generate content without writing entries
            tags: Tags applied to every created entry
            cancel_event: When set, groups not yet started are skipped
            callback: Progress callback

        Raises:
            UserError: If parallel < 1
        """
        if parallel < 1:
            raise UserError(f"parallel must be at least 1, got {parallel}")
        self.ledger = ledger
        self.generator = generator
        self.parallel = parallel
        self.dry_run = dry_run
        self.tags = list(tags)
        self.cancel_event = cancel_event or threading.Event()
        self._callback = callback or _NoOpCallback()

    def cancel(self) -> None:
        """Stop starting new groups; running groups finish normally."""
        self.cancel_event.set()

    def run(self, groups: list[CommitGroup]) -> CatchupResult:
        """
        Document every group.

        Args:
            groups: Groups to document; empty groups are ignored

        Returns:
            CatchupResult with created entries, failures and skipped groups
        """
        result = CatchupResult(dry_run=self.dry_run)
        groups = [g for g in groups if g.commits]
        if not groups:
            return result

        max_workers = min(self.parallel, len(groups))
        self._callback.on_start(len(groups), max_workers)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures: dict[Future[CatchupEntryRef], CommitGroup] = {
                executor.submit(self._process_group, group): group for group in groups
            }
            try:
                self._collect(futures, result)
            except KeyboardInterrupt:
                # Queued groups drain as skipped while the pool shuts down
                self.cancel()
                raise

        if result.skipped:
            logger.warning("Catch-up cancelled; %d group(s) not started", len(result.skipped))
        return result

    def _collect(
        self, futures: dict[Future[CatchupEntryRef], CommitGroup], result: CatchupResult
    ) -> None:
        for future in as_completed(futures):
            group = futures[future]
            try:
                ref = future.result()
            except _Cancelled:
                result.skipped.append(group.key)
                continue
            except LedgerError as e:
                failure = GroupFailure(group_key=group.key, error=e)
            except Exception as e:
                failure = GroupFailure(
                    group_key=group.key,
                    error=LedgerSystemError(f"catch-up failed for group {group.key}: {e}"),
                )
            else:
                result.entries.append(ref)
                self._callback.on_group_complete(ref)
                continue

            logger.error("Group %s failed: %s", failure.group_key, failure.error)
            result.failures.append(failure)
            self._callback.on_group_failed(failure)

    def _process_group(self, group: CommitGroup) -> CatchupEntryRef:
        """One generator call, then at most one write."""
        if self.cancel_event.is_set():
            raise _Cancelled(group.key)

        try:
            text = self.generator.complete(build_catchup_prompt(group), CATCHUP_SYSTEM_PROMPT)
        except Exception as e:
            raise LedgerSystemError(
                f"rationale generation failed for group {group.key}: {e}"
            ) from e

        summary = parse_rationale(text)
        entry = build_group_entry(self.ledger, group, summary=summary, tags=self.tags)

        if not self.dry_run:
            entry = self.ledger.write_entry(entry)

        return CatchupEntryRef(
            id=entry.id,
            anchor=entry.workset.anchor_commit,
            group_key=group.key,
            summary=summary,
        )
