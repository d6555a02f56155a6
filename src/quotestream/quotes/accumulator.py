"""Running quote: the ordered set of accepted quote items."""

import threading
from collections.abc import Iterator

from .models import QuoteItem
from .pricing import gross_amount, vat_amount


class QuoteAccumulator:
    """Insertion-ordered quote items, unique by id.

    Mutations are serialized with a lock so the total always equals the sum
    of the member prices, even when the normalizer and a user removal race
    on different threads.
    """

    def __init__(self, items: list[QuoteItem] | None = None) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, QuoteItem] = {}
        for item in items or []:
            self.add(item)

    def add(self, item: QuoteItem) -> bool:
        """Append an item. Returns False if an item with the same id exists."""
        with self._lock:
            if item.id in self._items:
                return False
            self._items[item.id] = item
            return True

    def remove(self, item_id: str) -> QuoteItem | None:
        """Remove by id. Unknown ids are a no-op and return None."""
        with self._lock:
            return self._items.pop(item_id, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    @property
    def items(self) -> tuple[QuoteItem, ...]:
        """Snapshot of the items in insertion order."""
        with self._lock:
            return tuple(self._items.values())

    @property
    def total(self) -> int:
        """Net total of all items."""
        return sum(item.price for item in self.items)

    @property
    def vat(self) -> int:
        return vat_amount(self.total)

    @property
    def gross(self) -> int:
        return gross_amount(self.total)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[QuoteItem]:
        return iter(self.items)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items
