"""Injectable identity and name generators.

Stores assign identity through an ``IdFactory`` and demo operations that need
throwaway names take a ``NameFactory``; both are plain callables so tests can
pass deterministic ones.
"""

from __future__ import annotations

from collections.abc import Callable
from itertools import count
from types import MappingProxyType
from typing import TYPE_CHECKING, Final
from uuid import uuid4

from crmrecon.domain.model import RecordType

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

type IdFactory = Callable[[RecordType], str]
type NameFactory = Callable[[], str]

# three-character key prefixes used by the hosted store for its standard objects
KEY_PREFIXES: Final[Mapping[RecordType, str]] = MappingProxyType(
    {
        RecordType.ACCOUNT: "001",
        RecordType.CONTACT: "003",
        RecordType.OPPORTUNITY: "006",
        RecordType.LEAD: "00Q",
        RecordType.CASE: "500",
    }
)
_ID_BODY_LENGTH: Final[int] = 15


class SequentialIdFactory:
    """Deterministic 18-character ids: key prefix plus a per-type counter."""

    def __init__(self, *, start: int = 1) -> None:
        self._start = start
        self._counters: dict[RecordType, Iterator[int]] = {}

    def __call__(self, record_type: RecordType) -> str:
        counter = self._counters.setdefault(record_type, count(self._start))
        return f"{KEY_PREFIXES[record_type]}{next(counter):0{_ID_BODY_LENGTH}d}"


def random_id(record_type: RecordType) -> str:
    return f"{KEY_PREFIXES[record_type]}{uuid4().hex[:_ID_BODY_LENGTH]}"


def sequential_names(prefix: str, *, start: int = 1) -> NameFactory:
    """Return a factory producing ``"<prefix> 1"``, ``"<prefix> 2"``, ..."""

    counter = count(start)

    def factory() -> str:
        return f"{prefix} {next(counter)}"

    return factory


def random_names(prefix: str) -> NameFactory:
    def factory() -> str:
        return f"{prefix} {uuid4().hex[:8]}"

    return factory
