"""Reverse group-membership lookup: which groups contain a given member?

The service only exposes members per group, so answering the question for
one technician or agent means reading the detail view of every group. Two
strategies are offered:

- cached (default): one summary fetch plus one detail fetch per non-empty
  group, done once per resolver; every later query is an in-memory scan.
- live: the same fetches, repeated for every query. Slower, never stale.

Result lists follow the order of the summary listing.
"""
from __future__ import annotations
import logging
from typing import Iterable, Iterator, Optional

from .api.client import ApiClient
from .api.filters import exact_matches
from .api.groups import AgentGroupService, GroupService, TechnicianGroupService

logger = logging.getLogger(__name__)


def _has_members(summary: dict) -> bool:
    # A missing count cannot prove the group empty, so it is fetched.
    count = summary.get("memberCount")
    return count is None or count > 0


def _contains(detail: dict, member_name: str, case_sensitive: bool = True) -> bool:
    return bool(exact_matches(detail.get("members") or [], "name", member_name, case_sensitive))


class MembershipResolver:
    """Resolve group membership for technicians or agents.

    Usage:
        resolver = MembershipResolver.for_technicians(client)
        memberships = resolver.groups_for_many(["alice", "bob"])
    """

    def __init__(self, groups: GroupService, live: bool = False):
        """Initialize resolver.

        Args:
            groups: Group service of the kind to search (technician or agent groups)
            live: Refetch on every query instead of building a cache once
        """
        self.groups = groups
        self.live = live
        self._cache: Optional[list[dict]] = None

    @classmethod
    def for_technicians(cls, client: ApiClient, live: bool = False) -> "MembershipResolver":
        return cls(TechnicianGroupService(client), live=live)

    @classmethod
    def for_agents(cls, client: ApiClient, live: bool = False) -> "MembershipResolver":
        return cls(AgentGroupService(client), live=live)

    @property
    def is_cached(self) -> bool:
        return self._cache is not None

    def invalidate(self) -> None:
        """Drop the cache; the next cached-mode query rebuilds it."""
        self._cache = None

    def _iter_details(self) -> Iterator[dict]:
        """Yield group details in summary order, skipping groups reported empty."""
        for summary in self.groups.list_groups():
            if not _has_members(summary):
                continue
            yield self.groups.fetch_detail(summary["id"])

    def _build_cache(self) -> list[dict]:
        # Published only once every detail fetch succeeded; a failure leaves no cache.
        details = list(self._iter_details())
        self._cache = details
        logger.debug(f"[membership] Cached {len(details)} non-empty {self.groups.kind.lower()}(s)")
        return details

    def groups_for(self, member_name: str) -> list[str]:
        """Return the names of groups containing a member with this name.

        An unknown member yields an empty list, not an error. Names are
        compared under the client's case policy.
        """
        case_sensitive = self.groups.client.config.case_sensitive_match
        if self.live:
            return [
                detail.get("name", "")
                for detail in self._iter_details()
                if _contains(detail, member_name, case_sensitive)
            ]

        details = self._cache if self._cache is not None else self._build_cache()
        return [detail.get("name", "") for detail in details if _contains(detail, member_name, case_sensitive)]

    def groups_for_many(self, member_names: Iterable[str]) -> dict[str, list[str]]:
        """Resolve membership for several members; keys keep the input order."""
        return {name: self.groups_for(name) for name in member_names}
