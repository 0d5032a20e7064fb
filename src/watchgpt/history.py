"""
History trimming. Bounds replayed chat context to the most recent turns.
"""

from typing import Sequence, TypeVar

T = TypeVar("T")

DEFAULT_MAX_HISTORY = 16


def trim(items: Sequence[T], max_items: int) -> Sequence[T]:
    """Return the last ``max_items`` elements of ``items`` in their original order.

    A non-positive bound, or a sequence already within bound, is returned as is.
    """
    if max_items <= 0 or len(items) <= max_items:
        return items
    return items[-max_items:]
