"""Per-session state and the operations allowed to change it."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from modules.generation.errors import UnexpectedError
from modules.generation.imagen_client import GeneratedImage, GenerationResult, ImagenClient
from modules.generation.style_presets import StylePreset, StylePresetRegistry
from modules.services.history_service import GenerationHistory
from modules.services.storage_service import StorageService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionState:
    """Everything the page shows for one visitor."""

    selected_style: StylePreset
    prompt_text: str = ""
    is_generating: bool = False
    last_error: Optional[str] = None
    current_image: Optional[GeneratedImage] = None
    history: GenerationHistory = field(default_factory=GenerationHistory)


class SessionStore:
    """Owner of a ``SessionState``.

    All mutations go through the methods below. ``request_generation`` admits
    at most one in-flight request; calls made while one is running are
    ignored rather than queued.
    """

    def __init__(
        self,
        client: ImagenClient,
        registry: StylePresetRegistry,
        api_key: Optional[str] = None,
        storage: Optional[StorageService] = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._api_key = api_key
        self._storage = storage
        self._lock = threading.Lock()
        self._state = SessionState(selected_style=registry.default())

    def __deepcopy__(self, memo: dict) -> "SessionStore":
        # gr.State copies the initial value for every visitor; the copy shares
        # the client, registry and storage but starts with empty state.
        fresh = SessionStore(self._client, self._registry, self._api_key, self._storage)
        memo[id(self)] = fresh
        return fresh

    @property
    def state(self) -> SessionState:
        """Current state; treat it as read-only."""
        return self._state

    @property
    def can_generate(self) -> bool:
        return not self._state.is_generating and bool(self._state.prompt_text.strip())

    def set_prompt(self, text: Optional[str]) -> None:
        with self._lock:
            self._state.prompt_text = text or ""

    def select_style(self, preset: Union[StylePreset, str]) -> None:
        """Select a preset object or a registered preset id."""
        if isinstance(preset, str):
            preset = self._registry.get(preset)
        with self._lock:
            self._state.selected_style = preset

    def request_generation(self) -> Optional[GenerationResult]:
        """Run one generation; returns None when the request was ignored."""
        with self._lock:
            if self._state.is_generating:
                logger.info("Generation already in progress; request ignored")
                return None
            prompt = self._state.prompt_text.strip()
            if not prompt:
                return None
            self._state.is_generating = True
            self._state.last_error = None
            style = self._state.selected_style

        try:
            result = self._client.generate(prompt, style, self._api_key)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Generation client raised unexpectedly")
            result = GenerationResult.failure(UnexpectedError(str(exc) or None))

        with self._lock:
            if result.ok:
                assert result.image is not None  # For type checkers
                self._state.current_image = result.image
                self._state.history.record(result.image)
            else:
                assert result.error is not None
                self._state.last_error = result.error.user_message
            self._state.is_generating = False
        return result

    def select_history_item(self, image_id: int) -> bool:
        """Show a history entry in the preview; unknown ids are ignored."""
        with self._lock:
            image = self._state.history.find(image_id)
            if image is None:
                return False
            self._state.current_image = image
            return True

    def clear_history(self, confirmed: bool) -> bool:
        """Drop all history entries once the user has confirmed."""
        if not confirmed:
            return False
        with self._lock:
            self._state.history.clear()
            self._state.current_image = None
        logger.info("History cleared")
        return True

    def download(self, image: Optional[GeneratedImage] = None) -> Optional[Path]:
        """Export ``image`` (default: the one in the preview) as a PNG file."""
        target = image or self._state.current_image
        if target is None:
            return None
        if self._storage is None:
            raise RuntimeError("ダウンロード先が設定されていません")
        return self._storage.save_image(target)
