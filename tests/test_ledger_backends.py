"""
Ledger behavior on every storage backend.

Each test runs twice through the parametrized ``ledger`` fixture: once over
JSON files and once over git notes, both on the same five-commit repository.
"""

from datetime import timedelta

import pytest

from devledger.core.catchup import EnrichmentScheduler
from devledger.core.errors import ConflictError, EntryNotFoundError, LedgerSystemError
from devledger.core.ledger import CommitGroup, Ledger
from helpers import BASE_TIME, FakeGenerator, make_entry


@pytest.fixture
def populated(ledger: Ledger, history: list[str]):
    """Entries on commits 1, 3 and 5, an hour apart; each covers its unlogged predecessors."""
    entries = [
        make_entry(history[0], created_at=BASE_TIME, tags=["security"]),
        make_entry(
            history[2],
            commits=[history[2], history[1]],
            created_at=BASE_TIME + timedelta(hours=1),
            tags=["docs"],
        ),
        make_entry(
            history[4],
            commits=[history[4], history[3]],
            created_at=BASE_TIME + timedelta(hours=2),
            tags=["perf", "security"],
        ),
    ]
    for entry in entries:
        ledger.write_entry(entry)
    return entries


class TestWrites:
    def test_duplicate_id_conflicts(self, ledger: Ledger, history: list[str]) -> None:
        entry = make_entry(history[1])
        ledger.write_entry(entry)
        with pytest.raises(ConflictError, match=entry.id):
            ledger.write_entry(entry.model_copy(update={"tags": ["second"]}))
        assert ledger.get_entry(entry.id).tags == []

    def test_overwrite_when_allowed(self, ledger: Ledger, history: list[str]) -> None:
        entry = make_entry(history[1])
        ledger.write_entry(entry)
        ledger.write_entry(entry.model_copy(update={"tags": ["second"]}), allow_overwrite=True)
        assert ledger.get_entry(entry.id).tags == ["second"]
        assert len(ledger.list_entries()) == 1

    def test_amend(self, ledger: Ledger, history: list[str]) -> None:
        entry = ledger.write_entry(make_entry(history[2], tags=["old"]))
        amended = ledger.amend_entry(entry.id, why="Compliance", tags=["audit"], notes="n")

        stored = ledger.get_entry(entry.id)
        assert stored == amended
        assert stored.summary.what == entry.summary.what
        assert stored.summary.why == "Compliance"
        assert stored.tags == ["audit"]
        assert stored.notes == "n"
        assert stored.created_at == entry.created_at
        assert stored.updated_at > entry.updated_at
        assert len(ledger.list_entries()) == 1

    def test_amend_missing_entry(self, ledger: Ledger) -> None:
        with pytest.raises(EntryNotFoundError):
            ledger.amend_entry("dl_2026-01-01T00:00:00Z_abcdef", why="x")


class TestReads:
    def test_last_n(self, ledger: Ledger, populated) -> None:
        assert [e.id for e in ledger.get_last_n_entries(2)] == [
            populated[2].id,
            populated[1].id,
        ]
        assert len(ledger.get_last_n_entries(10)) == 3
        assert ledger.get_latest_entry() == populated[2]

    def test_tags_match_any(self, ledger: Ledger, populated) -> None:
        ids = {e.id for e in ledger.filter_by_tag(["security"])}
        assert ids == {populated[0].id, populated[2].id}
        assert {e.id for e in ledger.filter_by_tag(["docs", "perf"])} == {
            populated[1].id,
            populated[2].id,
        }

    def test_time_bounds_inclusive(self, ledger: Ledger, populated) -> None:
        since = BASE_TIME + timedelta(hours=1)
        assert {e.id for e in ledger.filter_by_time(since=since)} == {
            populated[1].id,
            populated[2].id,
        }
        assert [e.id for e in ledger.filter_by_time(since=since, until=since)] == [
            populated[1].id
        ]

    def test_commit_range(self, ledger: Ledger, populated, history: list[str]) -> None:
        matched = ledger.filter_by_commit_range(history[0], history[2])
        assert [e.id for e in matched] == [populated[1].id]

    def test_query_combines_filters(self, ledger: Ledger, populated, history: list[str]) -> None:
        result = ledger.query(tags=["security"], commit_range=f"{history[2]}..HEAD")
        assert [e.id for e in result] == [populated[2].id]


class TestPending:
    def test_no_entries_returns_everything(self, ledger: Ledger, history: list[str]) -> None:
        pending = ledger.get_pending_commits()
        assert [c.sha for c in pending.commits] == list(reversed(history))
        assert pending.latest is None

    def test_commits_after_latest_anchor(self, ledger: Ledger, history: list[str]) -> None:
        entry = make_entry(history[2], commits=history[:3][::-1])
        ledger.write_entry(entry)
        pending = ledger.get_pending_commits()
        assert [c.sha for c in pending.commits] == [history[4], history[3]]
        assert pending.latest == entry
        assert not pending.stale_anchor

    def test_fully_documented(self, ledger: Ledger, populated) -> None:
        assert ledger.get_pending_commits().is_empty


class TestCatchup:
    def test_one_failed_group_leaves_the_rest_written(
        self, ledger: Ledger, history: list[str]
    ) -> None:
        commits = ledger.get_pending_commits().commits[::-1]
        groups = [
            CommitGroup(key=f"group-{i}", commits=[c]) for i, c in enumerate(commits, start=1)
        ]
        result = EnrichmentScheduler(
            ledger, FakeGenerator(fail_keys={"group-3"}), parallel=2
        ).run(groups)

        assert len(result.entries) == 4
        assert isinstance(result.first_error, LedgerSystemError)
        assert "group-3" in str(result.first_error)

        anchors = {e.anchor for e in ledger.list_entries()}
        assert anchors == set(history) - {history[2]}
