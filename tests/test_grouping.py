"""Tests for commit grouping strategies."""

from datetime import timedelta

import pytest

from devledger.core.errors import UserError
from devledger.core.ledger import (
    UNTRACKED_KEY,
    GroupStrategy,
    extract_work_item_trailer,
    group_commits,
)
from devledger.core.ledger.grouping import is_work_item_key
from helpers import BASE_TIME, make_commit_model


def commit_on_day(n: int, day_offset: int, body: str = ""):
    return make_commit_model(n, body=body, date=BASE_TIME + timedelta(days=day_offset, minutes=n))


class TestTrailerExtraction:
    """Tests for Work-item trailer parsing."""

    def test_trailer_found(self) -> None:
        body = "Longer explanation.\n\nWork-item: jira:PROJ-12"
        assert extract_work_item_trailer(body) == "jira:PROJ-12"

    def test_case_insensitive(self) -> None:
        assert extract_work_item_trailer("WORK-ITEM: gh:42") == "gh:42"
        assert extract_work_item_trailer("work-item:linear:ENG-9") == "linear:ENG-9"

    def test_first_trailer_wins(self) -> None:
        body = "Work-item: jira:A-1\nWork-item: jira:B-2"
        assert extract_work_item_trailer(body) == "jira:A-1"

    @pytest.mark.parametrize(
        "body",
        [
            "",
            "No trailer here",
            "Work-item: missing-system",
            "Work-item: jira:A-1 extra words",
            "See Work-item: jira:A-1 inline",
        ],
    )
    def test_no_trailer(self, body: str) -> None:
        assert extract_work_item_trailer(body) is None

    def test_is_work_item_key(self) -> None:
        assert is_work_item_key("jira:A-1")
        assert not is_work_item_key("2026-01-19")
        assert not is_work_item_key(UNTRACKED_KEY)


class TestWorkItemStrategy:
    """Tests for grouping by work-item trailer."""

    def test_groups_by_trailer(self) -> None:
        commits = [
            make_commit_model(4, body="Work-item: jira:B-2"),
            make_commit_model(3, body="Work-item: jira:A-1"),
            make_commit_model(2, body="Work-item: jira:B-2"),
            make_commit_model(1, body="Work-item: jira:A-1"),
        ]
        groups = group_commits(commits, GroupStrategy.WORK_ITEM)
        assert [g.key for g in groups] == ["jira:B-2", "jira:A-1"]
        assert groups[0].shas == [commits[0].sha, commits[2].sha]
        assert groups[1].shas == [commits[1].sha, commits[3].sha]

    def test_untracked_commits_kept(self) -> None:
        commits = [
            make_commit_model(2, body="Work-item: jira:A-1"),
            make_commit_model(1),
        ]
        groups = group_commits(commits, "work-item")
        assert {g.key for g in groups} == {"jira:A-1", UNTRACKED_KEY}
        assert sum(len(g.commits) for g in groups) == 2

    def test_anchor_is_newest(self) -> None:
        commits = [
            make_commit_model(2, body="Work-item: gh:7"),
            make_commit_model(1, body="Work-item: gh:7"),
        ]
        (group,) = group_commits(commits, GroupStrategy.WORK_ITEM)
        assert group.anchor == commits[0].sha
        assert group.is_work_item


class TestDayStrategy:
    """Tests for grouping by author day."""

    def test_groups_by_day_descending(self) -> None:
        commits = [
            commit_on_day(3, 2),
            commit_on_day(2, 0),
            commit_on_day(1, 0),
        ]
        groups = group_commits(commits, GroupStrategy.DAY)
        assert [g.key for g in groups] == ["2026-01-21", "2026-01-19"]
        assert groups[1].shas == [commits[1].sha, commits[2].sha]
        assert not groups[0].is_work_item


class TestAutoStrategy:
    """Tests for the all-or-nothing auto strategy."""

    def test_no_trailers_matches_day_grouping(self) -> None:
        commits = [commit_on_day(3, 1), commit_on_day(2, 1), commit_on_day(1, 0)]
        auto = group_commits(commits, GroupStrategy.AUTO)
        day = group_commits(commits, GroupStrategy.DAY)
        assert [(g.key, g.shas) for g in auto] == [(g.key, g.shas) for g in day]

    def test_any_trailer_switches_whole_set_to_work_items(self) -> None:
        commits = [
            commit_on_day(3, 1, body="Work-item: jira:A-1"),
            commit_on_day(2, 1),
            commit_on_day(1, 0),
        ]
        groups = group_commits(commits)
        assert [g.key for g in groups] == [UNTRACKED_KEY, "jira:A-1"]
        untracked = groups[0]
        assert untracked.shas == [commits[1].sha, commits[2].sha]

    def test_empty_input(self) -> None:
        assert group_commits([]) == []


class TestStrategyParsing:
    def test_parse_values(self) -> None:
        assert GroupStrategy.parse("work-item") is GroupStrategy.WORK_ITEM
        assert GroupStrategy.parse(GroupStrategy.DAY) is GroupStrategy.DAY

    def test_unknown_strategy(self) -> None:
        with pytest.raises(UserError, match="unknown grouping strategy"):
            GroupStrategy.parse("weekly")
