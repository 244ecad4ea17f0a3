"""
Targets, Records and Probe Outcomes

A Record is a read-only mapping of field name to value describing one unit
of collected information (one disk, one CPU, one BIOS) about one target.
A RecordSet is an immutable ordered sequence of Records.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .errors import InvalidTargetIdentifier

# Field stamped onto every record with the queried target
TARGET_FIELD = "ComputerName"

MAX_TARGET_LENGTH = 254
TARGET_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?$")

Record = Mapping[str, Any]


def validate_target(target: Any) -> str:
    """
    Check a target identifier against the conservative host syntax.

    Args:
        target: Hostname or address supplied by the caller

    Returns:
        The target, stripped of surrounding whitespace

    Raises:
        InvalidTargetIdentifier: If the identifier is malformed
    """
    if not isinstance(target, str):
        raise InvalidTargetIdentifier(target, "not a string")

    candidate = target.strip()
    if not candidate or len(candidate) > MAX_TARGET_LENGTH:
        raise InvalidTargetIdentifier(target, "length out of range")
    if not TARGET_PATTERN.match(candidate):
        raise InvalidTargetIdentifier(target, "unexpected characters")
    return candidate


def split_targets(value: Union[str, Iterable[str], None]) -> List[str]:
    """Normalise a comma separated string or iterable into an ordered, unique list."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)

    targets: List[str] = []
    seen = set()
    for item in items:
        name = item.strip() if isinstance(item, str) else item
        if name == "":
            continue
        key = name.lower() if isinstance(name, str) else name
        if key in seen:
            continue
        seen.add(key)
        targets.append(name)
    return targets


def freeze_record(record: Mapping[str, Any]) -> Record:
    """Return a read-only copy of a record."""
    return MappingProxyType(dict(record))


class RecordSet(Sequence):
    """
    Immutable ordered collection of records.

    Records are copied into read-only mappings on construction, so neither
    the producer nor any consumer can change a RecordSet once built.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[Mapping[str, Any]] = ()):
        self._records = tuple(freeze_record(r) for r in records)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return RecordSet(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecordSet):
            return self.to_list() == other.to_list()
        if isinstance(other, (list, tuple)):
            return self.to_list() == [dict(r) for r in other]
        return NotImplemented

    def __repr__(self) -> str:
        return f"<RecordSet records={len(self._records)}>"

    def field_names(self) -> List[str]:
        """Union of field names, in first-seen order."""
        names: Dict[str, None] = {}
        for record in self._records:
            for key in record:
                names.setdefault(key, None)
        return list(names)

    def to_list(self) -> List[Dict[str, Any]]:
        """Plain mutable copies of the records."""
        return [dict(r) for r in self._records]


@dataclass(frozen=True)
class Success:
    """A probe that returned records for one target."""
    target: str
    records: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class Failure:
    """A probe that failed for one target."""
    target: Any
    cause: BaseException

    @property
    def reason(self) -> str:
        return str(self.cause)


ProbeOutcome = Union[Success, Failure]


@dataclass
class CollectionResult:
    """Aggregate of a fan-out: merged records plus per-target failures."""
    records: RecordSet
    failures: List[Failure] = field(default_factory=list)
    targets: List[Any] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """True when every requested target failed."""
        return bool(self.targets) and len(self.failures) == len(self.targets)

    def failure_for(self, target: Any) -> Optional[Failure]:
        for failure in self.failures:
            if failure.target == target:
                return failure
        return None
