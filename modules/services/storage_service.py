"""File storage helpers for downloaded icons."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from modules.generation.imagen_client import GeneratedImage

logger = logging.getLogger(__name__)


class StorageService:
    """Write generated icons to a directory the UI serves as downloads."""

    def __init__(self, output_dir: Path, prefix: str = "sns-icon", max_items: int = 100) -> None:
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.max_items = max_items

    def save_image(self, image: GeneratedImage) -> Path:
        """Persist the icon bytes as ``<prefix>-<millis>.png`` and return the path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        token = time.time_ns() // 1_000_000
        path = self.output_dir / f"{self.prefix}-{token}.png"
        while path.exists():
            token += 1
            path = self.output_dir / f"{self.prefix}-{token}.png"

        path.write_bytes(image.image_data)
        logger.info("Exported icon %s to %s", image.id, path)

        self.cleanup(self.max_items)
        return path

    def cleanup(self, max_items: int = 100) -> None:
        """Keep only the ``max_items`` newest exports."""
        if max_items <= 0 or not self.output_dir.exists():
            return
        exports = sorted(
            self.output_dir.glob(f"{self.prefix}-*.png"),
            key=self._export_token,
            reverse=True,
        )
        for stale in exports[max_items:]:
            try:
                stale.unlink()
            except FileNotFoundError:
                continue
            logger.debug("Removed old export %s", stale)

    def _export_token(self, path: Path) -> int:
        token = path.stem[len(self.prefix) + 1 :]
        return int(token) if token.isdigit() else -1
