"""Generic accumulator for two-pass counted records (OBST, VENT).

WHY: OBST and VENT blocks declare a count, then write the first half of
every record, then the second half of every record. Vents additionally
split their count into ordinary and dummy categories. Both need the same
bookkeeping: route each body line to the right pass and category, know
when the block is complete, and zip the halves positionally.

HOW: CountedPairs holds one declared count per category. Lines fill the
first pass category by category, then the second pass in the same order.
combine() concatenates the categories and pairs the halves by position.

RULES:
- The declared counts govern exactly how many lines belong to each pass
- Categories are concatenated in declaration order before pairing
- A block declaring zero records is only completed by the next header
  line (awaiting_empty); a body line arriving instead is a structure error
"""

from __future__ import annotations

from typing import Callable, Generic, List, Sequence, Tuple, TypeVar

from fds_outputs.errors import ManifestStructureError

A = TypeVar("A")
B = TypeVar("B")
T = TypeVar("T")


class CountedPairs(Generic[A, B, T]):
    """Collects two counted passes of record halves and pairs them.

    Args:
        counts: Declared record count per category, e.g. ``(n,)`` for
                obstructions or ``(n_vents, n_dummy)`` for vents.
        parse_first: Decoder for a first-pass line.
        parse_second: Decoder for a second-pass line.
        pair: Builds the final record from both halves and the category
              index the pair belongs to.
    """

    def __init__(
        self,
        counts: Sequence[int],
        parse_first: Callable[[str], A],
        parse_second: Callable[[str], B],
        pair: Callable[[A, B, int], T],
    ) -> None:
        self.counts = tuple(counts)
        self._parse_first = parse_first
        self._parse_second = parse_second
        self._pair = pair
        self._first: List[List[A]] = [[] for _ in self.counts]
        self._second: List[List[B]] = [[] for _ in self.counts]

    @property
    def total(self) -> int:
        return sum(self.counts)

    @property
    def awaiting_empty(self) -> bool:
        """True for a zero-count block, which the next header line finalizes."""
        return self.total == 0

    @property
    def complete(self) -> bool:
        return self.total > 0 and self._filled(self._second)

    def _filled(self, passes: List[list]) -> bool:
        return all(len(items) >= n for items, n in zip(passes, self.counts))

    def _open_category(self, passes: List[list]) -> int:
        for category, (items, n) in enumerate(zip(passes, self.counts)):
            if len(items) < n:
                return category
        raise ManifestStructureError("record pass is already full")

    def feed(self, line: str) -> None:
        """Decode one body line into whichever pass and category is open."""
        if self.awaiting_empty:
            raise ManifestStructureError("body line in a block that declared zero records")
        if not self._filled(self._first):
            self._first[self._open_category(self._first)].append(self._parse_first(line))
        else:
            self._second[self._open_category(self._second)].append(self._parse_second(line))

    def combine(self) -> List[T]:
        """Pair the halves positionally across the concatenated categories."""
        firsts: List[Tuple[int, A]] = [
            (category, item) for category, items in enumerate(self._first) for item in items
        ]
        seconds: List[B] = [item for items in self._second for item in items]
        return [self._pair(first, second, category) for (category, first), second in zip(firsts, seconds)]
