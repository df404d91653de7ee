"""Tests for policy composition from traits."""

import itertools

import pytest

from headscan_core.filters import ExcludeOriginPRBranches
from headscan_core.model import CheckoutStrategy
from headscan_core.policy import (
    BranchDiscovery,
    CollaboratorListing,
    ExcludeArchived,
    ForkPullRequestDiscovery,
    Notifications,
    OriginPullRequestDiscovery,
    ReleaseDiscovery,
    TagDiscovery,
    WebhookRegistration,
    build_policy,
    traits_from_config,
)
from headscan_core.trust import DefaultOriginTrust, TrustContributors, TrustEveryone, TrustNobody

MERGE = CheckoutStrategy.MERGE
HEAD = CheckoutStrategy.HEAD


class TestTraits:
    def test_empty_policy_wants_nothing(self):
        policy = build_policy([])
        assert not (policy.want_branches or policy.want_tags or policy.want_prs or policy.want_releases)
        assert policy.authorities == {}
        assert policy.filters == ()

    def test_branch_discovery_excluding_pr_branches(self):
        policy = build_policy([BranchDiscovery("exclude_pr_branches")])
        assert policy.want_branches is True
        assert policy.want_origin_prs is True  # the filter needs the pull request list
        assert policy.filters == (ExcludeOriginPRBranches(),)
        assert isinstance(policy.authorities["branch"], DefaultOriginTrust)

    def test_all_branches_adds_no_filter(self):
        policy = build_policy([BranchDiscovery("all_branches")])
        assert policy.want_branches is True
        assert policy.want_prs is False
        assert policy.filters == ()

    def test_unknown_branch_strategy_raises(self):
        with pytest.raises(ValueError, match="branch strategy"):
            BranchDiscovery("some_branches")

    def test_fork_discovery_binds_trust(self):
        policy = build_policy([ForkPullRequestDiscovery(strategies=["head"], trust="nobody")])
        assert policy.want_fork_prs is True
        assert policy.fork_strategies == frozenset({HEAD})
        assert isinstance(policy.authorities["fork_pull_request"], TrustNobody)

    def test_unknown_trust_level_raises(self):
        with pytest.raises(ValueError, match="trust level"):
            ForkPullRequestDiscovery(trust="friends")

    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError, match="checkout strategy"):
            OriginPullRequestDiscovery(strategies=["rebase"])

    def test_strategies_for_respects_want_flags(self):
        policy = build_policy([ForkPullRequestDiscovery(strategies=[MERGE])])
        assert policy.strategies_for(fork=True) == frozenset({MERGE})
        assert policy.strategies_for(fork=False) == frozenset()

    def test_release_discovery_options(self):
        policy = build_policy([ReleaseDiscovery(include_prereleases=True)])
        assert policy.want_releases is True
        assert policy.include_prereleases is True
        assert policy.include_draft_releases is False

    def test_pass_through_settings(self):
        policy = build_policy(
            [WebhookRegistration("item"), Notifications(disabled=True), CollaboratorListing("fail")]
        )
        assert policy.webhook_registration == "item"
        assert policy.notifications_disabled is True
        assert policy.collaborator_listing == "fail"

    def test_exclude_archived(self):
        assert build_policy([]).exclude_archived is False
        assert build_policy([ExcludeArchived()]).exclude_archived is True
        assert traits_from_config(["exclude_archived"]) == [ExcludeArchived()]

    def test_invalid_webhook_mode_raises(self):
        with pytest.raises(ValueError):
            WebhookRegistration("sometimes")


class TestComposition:
    def test_strategy_sets_union(self):
        policy = build_policy(
            [OriginPullRequestDiscovery(strategies=[MERGE]), OriginPullRequestDiscovery(strategies=[HEAD])]
        )
        assert policy.origin_strategies == frozenset({MERGE, HEAD})

    def test_duplicate_filters_collapse(self):
        policy = build_policy([BranchDiscovery(), BranchDiscovery()])
        assert policy.filters == (ExcludeOriginPRBranches(),)

    def test_trait_order_does_not_matter(self):
        traits = [
            BranchDiscovery("only_pr_branches"),
            TagDiscovery(),
            OriginPullRequestDiscovery(strategies=[HEAD]),
            ForkPullRequestDiscovery(strategies=[MERGE, HEAD]),
            ReleaseDiscovery(include_prereleases=True),
        ]
        policies = [build_policy(p) for p in itertools.permutations(traits)]
        assert all(p == policies[0] for p in policies)
        assert all(p.authorities == policies[0].authorities for p in policies)

    def test_last_fork_trust_wins(self):
        policy = build_policy(
            [ForkPullRequestDiscovery(trust="nobody"), ForkPullRequestDiscovery(trust="everyone")]
        )
        assert isinstance(policy.authorities["fork_pull_request"], TrustEveryone)

    @pytest.mark.parametrize(
        "first, second",
        [
            ("only_pr_branches", "exclude_pr_branches"),
            ("exclude_pr_branches", "only_pr_branches"),
            ("all_branches", "pr_branches_or_main"),
        ],
    )
    def test_conflicting_branch_strategies_rejected(self, first, second):
        with pytest.raises(ValueError, match="Conflicting branch strategies"):
            build_policy([BranchDiscovery(first), BranchDiscovery(second)])


class TestTraitsFromConfig:
    def test_bare_names_and_mappings(self):
        traits = traits_from_config(
            [
                "tag_discovery",
                {"fork_pr_discovery": {"strategies": ["merge", "head"], "trust": "contributors"}},
                {"release_discovery": None},
            ]
        )
        assert traits[0] == TagDiscovery()
        assert traits[1] == ForkPullRequestDiscovery(strategies=[MERGE, HEAD], trust="contributors")
        assert traits[2] == ReleaseDiscovery()
        policy = build_policy(traits)
        assert isinstance(policy.authorities["fork_pull_request"], TrustContributors)

    def test_unknown_option_raises(self):
        with pytest.raises(ValueError, match="Invalid options"):
            traits_from_config([{"tag_discovery": {"annotated_only": True}}])

    def test_multi_key_entry_raises(self):
        with pytest.raises(ValueError, match="Invalid trait entry"):
            traits_from_config([{"tag_discovery": {}, "release_discovery": {}}])
