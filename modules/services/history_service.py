"""Session-scoped generation history."""

from __future__ import annotations

from typing import Iterator, List, Optional

from modules.generation.imagen_client import GeneratedImage


class GenerationHistory:
    """Prepend-only list of generated images, newest first.

    Entries are never reordered or deduplicated; the only removal is
    ``clear``, which drops everything at once.
    """

    def __init__(self) -> None:
        self._items: List[GeneratedImage] = []

    def record(self, image: GeneratedImage) -> None:
        """Insert an image at the front of the history."""
        self._items.insert(0, image)

    def find(self, image_id: int) -> Optional[GeneratedImage]:
        """Return the entry with ``image_id`` or None."""
        for item in self._items:
            if item.id == image_id:
                return item
        return None

    def list(self, limit: Optional[int] = None) -> List[GeneratedImage]:
        """Return a copy of the most recent entries."""
        if limit is None:
            return list(self._items)
        return self._items[:limit]

    def clear(self) -> None:
        self._items.clear()

    def __iter__(self) -> Iterator[GeneratedImage]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> GeneratedImage:
        return self._items[index]
