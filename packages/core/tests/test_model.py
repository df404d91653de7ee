"""Tests for heads, revisions and pull request naming."""

from headscan_core.model import (
    DEFAULT_ORIGIN,
    Branch,
    CheckoutStrategy,
    Origin,
    Tag,
    build_pull_request_head,
    build_pull_request_revision,
    pull_request_name,
    sorted_strategies,
)


def _pr_head(strategy=CheckoutStrategy.MERGE, count=1, origin=DEFAULT_ORIGIN):
    return build_pull_request_head(
        number=7,
        target_ref="main",
        strategy=strategy,
        strategy_count=count,
        origin=origin,
        origin_owner="acme",
        origin_repository="widgets",
        origin_ref="feature",
    )


class TestPullRequestName:
    def test_single_strategy_has_no_suffix(self):
        assert pull_request_name(7, CheckoutStrategy.MERGE, 1) == "PR-7"

    def test_multiple_strategies_are_suffixed(self):
        assert pull_request_name(7, CheckoutStrategy.MERGE, 2) == "PR-7-merge"
        assert pull_request_name(7, CheckoutStrategy.HEAD, 2) == "PR-7-head"


def test_strategies_sorted_in_declaration_order():
    strategies = frozenset({CheckoutStrategy.MERGE, CheckoutStrategy.HEAD})
    assert sorted_strategies(strategies) == [CheckoutStrategy.HEAD, CheckoutStrategy.MERGE]


class TestEquality:
    def test_tag_identity_ignores_timestamp(self):
        assert Tag("v1.0", 100) == Tag("v1.0", 200)
        assert hash(Tag("v1.0", 100)) == hash(Tag("v1.0", 200))

    def test_branch_and_tag_with_same_name_differ(self):
        assert Branch("v1.0") != Tag("v1.0")

    def test_pull_request_heads_compare_by_value(self):
        assert _pr_head() == _pr_head()
        assert _pr_head(CheckoutStrategy.MERGE, 2) != _pr_head(CheckoutStrategy.HEAD, 2)


class TestOrigin:
    def test_default_origin(self):
        assert DEFAULT_ORIGIN.is_default
        assert str(DEFAULT_ORIGIN) == "default"

    def test_fork_origin(self):
        origin = Origin.of_fork("bob", "widgets")
        assert not origin.is_default
        assert str(origin) == "fork:bob/widgets"

    def test_pull_request_from_fork(self):
        assert _pr_head(origin=Origin.of_fork("bob", "widgets")).is_fork
        assert not _pr_head().is_fork


def test_pull_request_revision_carries_both_sides():
    head = _pr_head()
    revision = build_pull_request_revision(head, "b" * 40, "a" * 40)
    assert revision.target.head == Branch("main")
    assert revision.target_sha == "b" * 40
    assert revision.origin.head == Branch("feature")
    assert revision.sha == "a" * 40
