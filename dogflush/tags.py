# dogflush/tags.py
from __future__ import annotations

from typing import Iterable, List, Optional


def unique_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Sorted, de-duplicated copy of a tag list.
    Output order never depends on insertion order; the input is left untouched.
    """
    if not tags:
        return []
    return sorted(set(tags))
