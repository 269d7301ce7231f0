"""
Workshop placement engine
-------------------------
- One workbench (holds a single item), a chain of fixed-size cabinets and an
  unbounded "outside" area.
- Every incoming item first clears the workbench: the item on it is put into
  cabinet 1; if that cabinet is full its oldest item moves on to cabinet 2,
  and so on. Whatever falls out of the last cabinet ends up outside.
- The incoming item is then looked up outside, then in the cabinets in order,
  and finally put on the workbench. The lookup result is returned as an
  Outcome: a 1-based cabinet number, OUTSIDE or NEW.

No I/O happens here; see carpenter.py for the command line driver.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence

Item = int


# ---------- Outcome ----------
class Found(Enum):
    CABINET = "cabinet"
    OUTSIDE = "outside"
    NEW = "new"


@dataclass(frozen=True)
class Outcome:
    found: Found
    cabinet_nr: Optional[int] = None  # 1-based, only for Found.CABINET

    def __post_init__(self) -> None:
        assert (self.cabinet_nr is not None) == (self.found is Found.CABINET)

    @classmethod
    def cabinet(cls, nr: int) -> "Outcome":
        return cls(Found.CABINET, nr)

    @classmethod
    def outside(cls) -> "Outcome":
        return cls(Found.OUTSIDE)

    @classmethod
    def new(cls) -> "Outcome":
        return cls(Found.NEW)


# ---------- Storage ----------
@dataclass(frozen=True, eq=False)
class Slot:
    """Position of an item inside one cabinet, valid until that cabinet changes."""

    owner: "Cabinet"
    index: int
    generation: int


class Cabinet:
    """Insertion-ordered storage, newest item at the front.

    capacity=None makes the cabinet unbounded (used for the outside area).
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        assert capacity is None or capacity >= 1
        self.capacity = capacity
        self._storage: deque = deque()
        self._generation = 0

    def __len__(self) -> int:
        return len(self._storage)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._storage)

    def items(self) -> List[Item]:
        return list(self._storage)

    def is_full(self) -> bool:
        return self.capacity is not None and len(self._storage) >= self.capacity

    def is_empty(self) -> bool:
        return not self._storage

    def insert_front(self, item: Item) -> Optional[Item]:
        """Put item at the front. If the cabinet was full, the oldest item is taken out and returned."""
        evicted = self._storage.pop() if self.is_full() else None
        self._storage.appendleft(item)
        self._generation += 1
        return evicted

    def find(self, item: Item) -> Optional[Slot]:
        for idx, stored in enumerate(self._storage):
            if stored == item:
                return Slot(owner=self, index=idx, generation=self._generation)
        return None

    def remove_at(self, slot: Slot) -> Item:
        assert slot.owner is self, "slot belongs to another cabinet"
        assert slot.generation == self._generation, "stale slot"
        item = self._storage[slot.index]
        del self._storage[slot.index]
        self._generation += 1
        return item

    def remove_oldest(self) -> Optional[Item]:
        if not self._storage:
            return None
        self._generation += 1
        return self._storage.pop()


# ---------- Workshop ----------
class WorkShop:
    def __init__(self, cabinet_sizes: Sequence[int]) -> None:
        self.outside = Cabinet()
        self.workbench = Cabinet(1)
        self.cabinets: List[Cabinet] = [Cabinet(size) for size in cabinet_sizes]

    def work_on(self, item: Item) -> Outcome:
        """Clear the workbench, then fetch item from wherever it is and put it on the workbench."""
        current = self.workbench.remove_oldest()
        if current is not None:
            self._put_away(current)

        slot = self.outside.find(item)
        if slot is not None:
            self.outside.remove_at(slot)
            self.workbench.insert_front(item)
            return Outcome.outside()

        for nr, cabinet in enumerate(self.cabinets, start=1):
            slot = cabinet.find(item)
            if slot is not None:
                cabinet.remove_at(slot)
                self.workbench.insert_front(item)
                return Outcome.cabinet(nr)

        self.workbench.insert_front(item)
        return Outcome.new()

    def _put_away(self, item: Item) -> None:
        # Each full cabinet hands its oldest item to the next one
        pending: Optional[Item] = item
        for cabinet in self.cabinets:
            pending = cabinet.insert_front(pending)
            if pending is None:
                return
        self.outside.insert_front(pending)

    def total_items(self) -> int:
        return len(self.workbench) + len(self.outside) + sum(len(c) for c in self.cabinets)

    def snapshot(self) -> Dict[str, object]:
        return {
            "workbench": self.workbench.items(),
            "cabinets": [c.items() for c in self.cabinets],
            "outside": self.outside.items(),
        }

    def check_invariants(self) -> None:
        """Assert that every item has a single location and no cabinet overflows."""
        containers = [self.workbench, self.outside, *self.cabinets]
        seen: List[Item] = []
        for container in containers:
            if container.capacity is not None:
                assert len(container) <= container.capacity, f"cabinet over capacity: {container.items()}"
            seen.extend(container)
        assert len(seen) == len(set(seen)), f"duplicate items: {sorted(seen)}"
