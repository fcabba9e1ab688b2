"""
Friend-list codec.

A profile's ``friends`` field is stored as a flat string so it fits the
record store's scalar-field model: pairs are separated by ``|`` and the
partition/row inside a pair by ``;``::

    "CA;bob|US;carol"  <->  [Location("CA", "bob"), Location("US", "carol")]

Business logic only ever sees ``List[Location]``.
"""
from __future__ import annotations

from typing import Iterable, List, NamedTuple

from .errors import BadRequest

PAIR_SEPARATOR = "|"
FIELD_SEPARATOR = ";"
_RESERVED = (PAIR_SEPARATOR, FIELD_SEPARATOR)


class Location(NamedTuple):
    """Key of a profile record: (partition, row)."""
    partition: str
    row: str

    def __str__(self) -> str:
        return f"{self.partition}/{self.row}"


def validate_location(location: Location) -> Location:
    """Reject identifiers that would corrupt the encoded list."""
    for part in location:
        if not part:
            raise BadRequest("Empty partition or row")
        if any(sep in part for sep in _RESERVED):
            raise BadRequest(f"Identifier contains a reserved character: {part!r}")
    return location


def parse_friends(encoded: str) -> List[Location]:
    if not encoded:
        return []
    friends = []
    for pair in encoded.split(PAIR_SEPARATOR):
        partition, _, row = pair.partition(FIELD_SEPARATOR)
        friends.append(Location(partition, row))
    return friends


def format_friends(friends: Iterable[Location]) -> str:
    return PAIR_SEPARATOR.join(
        f"{loc.partition}{FIELD_SEPARATOR}{loc.row}"
        for loc in (validate_location(Location(*f)) for f in friends)
    )


def add_friend(friends: List[Location], location: Location) -> List[Location]:
    """Append ``location`` unless already present. Returns a new list."""
    location = Location(*location)
    if location in friends:
        return list(friends)
    return [*friends, location]


def remove_friend(friends: List[Location], location: Location) -> List[Location]:
    """Drop ``location`` if present. Returns a new list."""
    location = Location(*location)
    return [f for f in friends if f != location]
