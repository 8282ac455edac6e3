"""View projection over decrypted vault entries.

Pure functions computing the virtual groups, search, and the join between
entries and the group catalog, plus the request tracker that keeps a slow,
superseded listing from overwriting a newer one.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from .models import (
    ALL_GROUP,
    FAVORITES_GROUP,
    RECENT_GROUP,
    EntryView,
    Group,
    GroupLabel,
    VaultEntry,
    VaultSummary,
    is_virtual_group,
    utcnow,
)

DEFAULT_RECENT_DAYS = 7


def is_recent(entry: VaultEntry, now: Optional[datetime] = None, recent_days: int = DEFAULT_RECENT_DAYS) -> bool:
    """True if the entry was created within the last ``recent_days`` days."""
    now = now or utcnow()
    return entry.created_at >= now - timedelta(days=recent_days)


def filter_virtual(
    entries: Iterable[VaultEntry],
    group_filter: str = ALL_GROUP,
    now: Optional[datetime] = None,
    recent_days: int = DEFAULT_RECENT_DAYS,
) -> list[VaultEntry]:
    """
    Apply a virtual group filter.

    Membership is computed from the entries on every call. Real group ids
    pass everything through; the record store already filtered those.
    """
    entries = list(entries)
    if group_filter == FAVORITES_GROUP:
        return [e for e in entries if e.is_favorite]
    if group_filter == RECENT_GROUP:
        now = now or utcnow()
        return [e for e in entries if is_recent(e, now, recent_days)]
    return entries


def search_entries(entries: Iterable[VaultEntry], query: Optional[str]) -> list[VaultEntry]:
    """Case-insensitive substring match on account name. Blank query = no-op."""
    entries = list(entries)
    needle = (query or "").strip().casefold()
    if not needle:
        return entries
    return [e for e in entries if needle in e.account_name.casefold()]


def resolve_group(group_ref: str, groups: Sequence[Group]) -> GroupLabel:
    """
    Resolve an entry's stored group reference to a display label.

    Tries an id match first, then a name match (legacy entries stored the
    group name). Unmatched references are carried forward verbatim as both
    id and label, flagged as orphaned.
    """
    for group in groups:
        if group.id == group_ref:
            return GroupLabel(id=group.id, label=group.name, icon=group.icon)
    for group in groups:
        if group.name == group_ref:
            return GroupLabel(id=group.id, label=group.name, icon=group.icon)
    return GroupLabel(id=group_ref, label=group_ref, orphaned=True)


def project(
    entries: Iterable[VaultEntry],
    groups: Sequence[Group],
    group_filter: str = ALL_GROUP,
    query: Optional[str] = None,
    now: Optional[datetime] = None,
    recent_days: int = DEFAULT_RECENT_DAYS,
) -> list[EntryView]:
    """Virtual group filter, then search, then join against the catalog."""
    visible = filter_virtual(entries, group_filter, now, recent_days)
    visible = search_entries(visible, query)
    return [EntryView(entry=e, group=resolve_group(e.group_ref, groups)) for e in visible]


def group_title(group_filter: str, groups: Sequence[Group]) -> str:
    """Heading for the active view."""
    titles = {
        ALL_GROUP: "All Passwords",
        FAVORITES_GROUP: "Favorites",
        RECENT_GROUP: "Recent",
    }
    if is_virtual_group(group_filter):
        return titles.get(group_filter, titles[ALL_GROUP])
    label = resolve_group(group_filter, groups)
    return label.label if label.orphaned else f"{label.label} Group"


def summarize(
    entries: Sequence[VaultEntry],
    now: Optional[datetime] = None,
    recent_days: int = DEFAULT_RECENT_DAYS,
) -> VaultSummary:
    """Counts over a set of entries."""
    now = now or utcnow()
    latest = max(entries, key=lambda e: e.created_at, default=None)
    return VaultSummary(
        total=len(entries),
        favorites=sum(1 for e in entries if e.is_favorite),
        recent=sum(1 for e in entries if is_recent(e, now, recent_days)),
        decryption_failures=sum(1 for e in entries if e.decryption_failed),
        latest_entry=latest.account_name if latest else None,
    )


@dataclass(frozen=True)
class ListTicket:
    """Identifies one listing request and the inputs it was issued for."""

    generation: int
    snapshot: Any


class ListRequestTracker:
    """
    Supersession of in-flight listings.

    Each request takes a ticket; only the most recently issued ticket may
    commit its result. Older requests are not aborted, their results are
    simply dropped when they arrive.
    """

    def __init__(self):
        self._generation = 0

    def begin(self, snapshot: Any = None) -> ListTicket:
        self._generation += 1
        return ListTicket(generation=self._generation, snapshot=snapshot)

    def is_current(self, ticket: ListTicket) -> bool:
        return ticket.generation == self._generation

    def invalidate(self) -> None:
        """Make every outstanding ticket stale."""
        self._generation += 1
