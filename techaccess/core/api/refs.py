"""References to a single service record.

Callers address a record by name, by numeric id, by GUID (agents only), or
hand over a record they already fetched. Accessors dispatch on the variant.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Union

from .exceptions import ValidationError
from .filters import exact_matches, select_one


@dataclass(frozen=True)
class ByName:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ById:
    id: int

    def __str__(self) -> str:
        return f"#{self.id}"


@dataclass(frozen=True)
class ByGuid:
    guid: str

    def __str__(self) -> str:
        return self.guid


@dataclass(frozen=True)
class Resolved:
    """A record already fetched from the service; no lookup is issued."""
    record: dict

    def __str__(self) -> str:
        label = self.record.get("name") or self.record.get("path") or self.record.get("id")
        return str(label)


Ref = Union[ByName, ById, ByGuid, Resolved]


def as_ref(value: Union[Ref, str, int]) -> Ref:
    """Accept a bare name (str) or id (int) where a Ref is expected."""
    if isinstance(value, (ByName, ById, ByGuid, Resolved)):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Cannot build a reference from {value!r}")
    if isinstance(value, int):
        return ById(value)
    if isinstance(value, str):
        return ByName(value)
    raise TypeError(f"Cannot build a reference from {type(value).__name__}")


def resolve_ref(
    ref: Ref,
    fetch: Callable[[], list[dict]],
    kind: str,
    name_key: str = "name",
    case_sensitive: bool = True,
    allow_guid: bool = False,
) -> dict:
    """Resolve a reference to exactly one record.

    Args:
        ref: Reference variant
        fetch: Callable returning the full collection (called at most once)
        kind: Record kind for error messages (e.g. "Technician")
        name_key: Field compared for ByName (exact match, no wildcards)
        case_sensitive: Case policy for ByName
        allow_guid: Whether ByGuid is meaningful for this kind

    Raises:
        NotFoundError: Nothing matched
        AmbiguousMatchError: Several records matched
        ValidationError: Reference variant not supported for this kind
    """
    if isinstance(ref, Resolved):
        return ref.record
    if isinstance(ref, ByName):
        return select_one(exact_matches(fetch(), name_key, ref.name, case_sensitive), kind, ref.name)
    if isinstance(ref, ById):
        matches = [r for r in fetch() if str(r.get("id")) == str(ref.id)]
        return select_one(matches, kind, ref)
    if isinstance(ref, ByGuid):
        if not allow_guid:
            raise ValidationError(f"{kind} records cannot be addressed by GUID")
        matches = [r for r in fetch() if str(r.get("guid", "")).lower() == ref.guid.lower()]
        return select_one(matches, kind, ref.guid)
    raise ValidationError(f"Unsupported {kind} reference: {ref!r}")
