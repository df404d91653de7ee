"""Discovery policy and the traits that compose it.

A policy is built once per configured source by applying an ordered list of
traits to a PolicyBuilder. Traits only ever OR their want flags, union their
strategy sets and append their filters, so the order they are listed in does
not change the resulting policy. The exceptions are single-valued settings:

  - webhook registration mode, notification toggle, collaborator listing
    mode: last applied wins.
  - trust authority bindings: one per head kind, last applied wins. Listing
    two fork discovery traits with different trust levels is an explicit
    override, and the later one is the one that counts.

Branch discovery strategies are mutually exclusive: listing two branch
discovery traits with different strategies raises ValueError, since their
filters would stack and could drop every branch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from headscan_core.filters import ExcludeOriginPRBranches, OnlyOriginPRBranches, OriginPRBranchesOrMain
from headscan_core.model import CheckoutStrategy
from headscan_core.trust import DefaultOriginTrust, TrustContributors, fork_authority

if TYPE_CHECKING:
    from collections.abc import Iterable

    from headscan_core.filters import HeadFilter
    from headscan_core.trust import TrustAuthority

logger = logging.getLogger(__name__)

WEBHOOK_MODES = ("system", "item", "disable")
COLLABORATOR_LISTING_MODES = ("degrade", "fail")


@dataclass(frozen=True)
class DiscoveryPolicy:
    want_branches: bool = False
    want_tags: bool = False
    want_origin_prs: bool = False
    want_fork_prs: bool = False
    want_releases: bool = False
    origin_strategies: frozenset[CheckoutStrategy] = frozenset()
    fork_strategies: frozenset[CheckoutStrategy] = frozenset()
    authorities: dict[str, TrustAuthority] = field(default_factory=dict, hash=False)
    filters: tuple[HeadFilter, ...] = ()
    include_draft_releases: bool = False
    include_prereleases: bool = False
    map_artifacts_to_assets: bool = False
    webhook_registration: str = "system"
    notifications_disabled: bool = False
    collaborator_listing: str = "degrade"
    exclude_archived: bool = False

    @property
    def want_prs(self) -> bool:
        return self.want_origin_prs or self.want_fork_prs

    def strategies_for(self, fork: bool) -> frozenset[CheckoutStrategy]:
        """Return the checkout strategies to apply to a pull request of the given origin."""
        if fork:
            return self.fork_strategies if self.want_fork_prs else frozenset()
        return self.origin_strategies if self.want_origin_prs else frozenset()


class PolicyBuilder:
    """Mutable accumulator that traits decorate."""

    def __init__(self):
        self.want_branches = False
        self.want_tags = False
        self.want_origin_prs = False
        self.want_fork_prs = False
        self.want_releases = False
        self.branch_strategy: str | None = None
        self.origin_strategies: set[CheckoutStrategy] = set()
        self.fork_strategies: set[CheckoutStrategy] = set()
        self.authorities: dict[str, TrustAuthority] = {}
        self.filters: list[HeadFilter] = []
        self.include_draft_releases = False
        self.include_prereleases = False
        self.map_artifacts_to_assets = False
        self.webhook_registration = "system"
        self.notifications_disabled = False
        self.collaborator_listing = "degrade"
        self.exclude_archived = False

    def with_authority(self, kind: str, authority: TrustAuthority) -> PolicyBuilder:
        previous = self.authorities.get(kind)
        if previous is not None and previous != authority:
            logger.debug("Trust authority for %s overridden: %s -> %s", kind, previous.name, authority.name)
        self.authorities[kind] = authority
        return self

    def with_filter(self, head_filter: HeadFilter) -> PolicyBuilder:
        if head_filter not in self.filters:
            self.filters.append(head_filter)
        return self

    def build(self) -> DiscoveryPolicy:
        return DiscoveryPolicy(
            want_branches=self.want_branches,
            want_tags=self.want_tags,
            want_origin_prs=self.want_origin_prs,
            want_fork_prs=self.want_fork_prs,
            want_releases=self.want_releases,
            origin_strategies=frozenset(self.origin_strategies),
            fork_strategies=frozenset(self.fork_strategies),
            authorities=dict(self.authorities),
            filters=tuple(self.filters),
            include_draft_releases=self.include_draft_releases,
            include_prereleases=self.include_prereleases,
            map_artifacts_to_assets=self.map_artifacts_to_assets,
            webhook_registration=self.webhook_registration,
            notifications_disabled=self.notifications_disabled,
            collaborator_listing=self.collaborator_listing,
            exclude_archived=self.exclude_archived,
        )


def _parse_strategies(values: Iterable[str | CheckoutStrategy]) -> frozenset[CheckoutStrategy]:
    result = set()
    for value in values:
        if isinstance(value, CheckoutStrategy):
            result.add(value)
            continue
        try:
            result.add(CheckoutStrategy(str(value).lower()))
        except ValueError:
            raise ValueError(f"Unknown checkout strategy: {value!r}. Choose 'merge' or 'head'.")
    return frozenset(result)


# ---------------------------------------------------------------------- #
# Traits                                                                  #
# ---------------------------------------------------------------------- #

BRANCH_STRATEGIES = ("exclude_pr_branches", "only_pr_branches", "all_branches", "pr_branches_or_main")


@dataclass(frozen=True)
class BranchDiscovery:
    strategy: str = "exclude_pr_branches"

    def __post_init__(self):
        if self.strategy not in BRANCH_STRATEGIES:
            raise ValueError(f"Unknown branch strategy: {self.strategy!r}. Choose one of {list(BRANCH_STRATEGIES)}.")

    def decorate(self, builder: PolicyBuilder) -> None:
        if builder.branch_strategy not in (None, self.strategy):
            raise ValueError(
                f"Conflicting branch strategies: {builder.branch_strategy!r} and {self.strategy!r}. List only one."
            )
        builder.branch_strategy = self.strategy
        builder.want_branches = True
        builder.with_authority("branch", DefaultOriginTrust())
        if self.strategy == "all_branches":
            # Every branch is taken; no need to ask for pull requests or filter.
            return
        builder.want_origin_prs = True
        if self.strategy == "exclude_pr_branches":
            builder.with_filter(ExcludeOriginPRBranches())
        elif self.strategy == "only_pr_branches":
            builder.with_filter(OnlyOriginPRBranches())
        else:
            builder.with_filter(OriginPRBranchesOrMain())


@dataclass(frozen=True)
class OriginPullRequestDiscovery:
    strategies: frozenset[CheckoutStrategy] = frozenset({CheckoutStrategy.MERGE})

    def __post_init__(self):
        object.__setattr__(self, "strategies", _parse_strategies(self.strategies))

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.want_origin_prs = True
        builder.origin_strategies |= self.strategies
        builder.with_authority("origin_pull_request", DefaultOriginTrust())


@dataclass(frozen=True)
class ForkPullRequestDiscovery:
    strategies: frozenset[CheckoutStrategy] = frozenset({CheckoutStrategy.MERGE})
    trust: str = TrustContributors.name

    def __post_init__(self):
        object.__setattr__(self, "strategies", _parse_strategies(self.strategies))
        fork_authority(self.trust)  # validate early

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.want_fork_prs = True
        builder.fork_strategies |= self.strategies
        builder.with_authority("fork_pull_request", fork_authority(self.trust))


@dataclass(frozen=True)
class TagDiscovery:
    def decorate(self, builder: PolicyBuilder) -> None:
        builder.want_tags = True
        builder.with_authority("tag", DefaultOriginTrust())


@dataclass(frozen=True)
class ReleaseDiscovery:
    include_drafts: bool = False
    include_prereleases: bool = False
    map_artifacts_to_assets: bool = False

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.want_releases = True
        builder.include_draft_releases = builder.include_draft_releases or self.include_drafts
        builder.include_prereleases = builder.include_prereleases or self.include_prereleases
        builder.map_artifacts_to_assets = builder.map_artifacts_to_assets or self.map_artifacts_to_assets
        builder.with_authority("release", DefaultOriginTrust())


@dataclass(frozen=True)
class WebhookRegistration:
    mode: str = "system"

    def __post_init__(self):
        if self.mode not in WEBHOOK_MODES:
            raise ValueError(f"Unknown webhook registration mode: {self.mode!r}. Choose one of {list(WEBHOOK_MODES)}.")

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.webhook_registration = self.mode


@dataclass(frozen=True)
class Notifications:
    disabled: bool = False

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.notifications_disabled = self.disabled


@dataclass(frozen=True)
class CollaboratorListing:
    """What to do when the server will not list collaborators for this caller.

    ``degrade`` (the default) treats every fork as untrusted for the pass;
    ``fail`` aborts the pass with a CapabilityError.
    """

    mode: str = "degrade"

    def __post_init__(self):
        if self.mode not in COLLABORATOR_LISTING_MODES:
            raise ValueError(
                f"Unknown collaborator listing mode: {self.mode!r}. Choose one of {list(COLLABORATOR_LISTING_MODES)}."
            )

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.collaborator_listing = self.mode


@dataclass(frozen=True)
class ExcludeArchived:
    """Skip archived repositories when discovering the repositories of an owner."""

    def decorate(self, builder: PolicyBuilder) -> None:
        builder.exclude_archived = True


def build_policy(traits: Iterable) -> DiscoveryPolicy:
    """Apply traits in order and return the resulting policy."""
    builder = PolicyBuilder()
    for trait in traits:
        trait.decorate(builder)
    return builder.build()


# Name used in .headscan.yml → trait class. Option keys map onto constructor arguments.
TRAITS = {
    "branch_discovery": BranchDiscovery,
    "origin_pr_discovery": OriginPullRequestDiscovery,
    "fork_pr_discovery": ForkPullRequestDiscovery,
    "tag_discovery": TagDiscovery,
    "release_discovery": ReleaseDiscovery,
    "webhook_registration": WebhookRegistration,
    "notifications": Notifications,
    "collaborator_listing": CollaboratorListing,
    "exclude_archived": ExcludeArchived,
}


def traits_from_config(entries: list) -> list:
    """Turn the ``traits:`` list of a source section into trait objects.

    Each entry is either a bare trait name or a single-key mapping from the
    trait name to its options:

        traits:
          - tag_discovery
          - fork_pr_discovery: {strategies: [merge, head], trust: contributors}
    """
    traits = []
    for entry in entries or []:
        if isinstance(entry, str):
            name, options = entry, {}
        elif isinstance(entry, dict) and len(entry) == 1:
            name, options = next(iter(entry.items()))
            options = options or {}
        else:
            raise ValueError(f"Invalid trait entry: {entry!r}")
        trait_cls = TRAITS.get(name)
        if trait_cls is None:
            raise ValueError(f"Unknown trait: {name!r}. Choose one of {sorted(TRAITS)}.")
        try:
            traits.append(trait_cls(**options))
        except TypeError as e:
            raise ValueError(f"Invalid options for trait {name!r}: {e}") from e
    return traits
