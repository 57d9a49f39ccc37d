"""Style preset management."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence


@dataclass(frozen=True, slots=True)
class StylePreset:
    """Visual style appended to the user's prompt."""

    id: str
    display_name: str
    prompt_suffix: str


DEFAULT_PRESETS: Sequence[StylePreset] = (
    StylePreset(
        id="flat",
        display_name="フラットデザイン",
        prompt_suffix="flat vector icon, minimalist, colorful, clean lines, white background, no text",
    ),
    StylePreset(
        id="anime",
        display_name="アニメ風",
        prompt_suffix=(
            "anime style character icon, vibrant colors, detailed eyes, high quality, "
            "white background, no text"
        ),
    ),
    StylePreset(
        id="pixel",
        display_name="ドット絵",
        prompt_suffix="pixel art icon, 8-bit style, retro game aesthetic, white background, no text",
    ),
    StylePreset(
        id="3d",
        display_name="3Dキャラクター",
        prompt_suffix=(
            "3D cute character render, claymorphism, soft lighting, 4k, white background, no text"
        ),
    ),
    StylePreset(
        id="watercolor",
        display_name="水彩画風",
        prompt_suffix=(
            "watercolor painting style icon, artistic, soft edges, pastel colors, "
            "white background, no text"
        ),
    ),
    StylePreset(
        id="logo",
        display_name="ロゴ風",
        prompt_suffix=(
            "modern logo design, vector graphics, abstract, geometric, minimalist, "
            "white background, no text"
        ),
    ),
    StylePreset(
        id="oil",
        display_name="油絵風",
        prompt_suffix=(
            "oil painting style, textured brushstrokes, artistic, vivid colors, "
            "white background, no text"
        ),
    ),
    StylePreset(
        id="cyber",
        display_name="サイバーパンク",
        prompt_suffix=(
            "cyberpunk style icon, neon lights, futuristic, high tech, dark background, "
            "glowing, no text"
        ),
    ),
)


class StylePresetRegistry:
    """Ordered in-memory registry of style presets."""

    def __init__(self, presets: Sequence[StylePreset] = ()) -> None:
        self._presets: Dict[str, StylePreset] = {}
        for preset in presets:
            self.add(preset)

    @classmethod
    def with_defaults(cls) -> "StylePresetRegistry":
        """Return a registry holding the built-in presets."""
        return cls(DEFAULT_PRESETS)

    def load_from_file(self, path: Path) -> None:
        """Load presets from a JSON file, replacing entries with the same id."""
        if not path.exists():
            return
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        for entry in data:
            preset = StylePreset(
                id=entry["id"],
                display_name=entry.get("display_name") or entry["id"],
                prompt_suffix=entry.get("prompt_suffix", ""),
            )
            self.add(preset)

    def add(self, preset: StylePreset) -> None:
        """Register a new style preset."""
        self._presets[preset.id] = preset

    def list_presets(self) -> List[StylePreset]:
        """Return all registered presets in registration order."""
        return list(self._presets.values())

    def default(self) -> StylePreset:
        """Return the first registered preset."""
        try:
            return next(iter(self._presets.values()))
        except StopIteration as exc:
            raise LookupError("No style presets registered") from exc

    def get(self, preset_id: str) -> StylePreset:
        """Retrieve a preset by id."""
        try:
            return self._presets[preset_id]
        except KeyError as exc:
            raise KeyError(f"Style preset '{preset_id}' not found") from exc

    def __contains__(self, preset_id: object) -> bool:
        return preset_id in self._presets

    def __len__(self) -> int:
        return len(self._presets)
