"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import gradio as gr
from PIL import Image

from config.settings import AppConfig
from modules.generation.imagen_client import GeneratedImage, ImagenClient
from modules.generation.style_presets import StylePreset, StylePresetRegistry
from modules.services.session_store import SessionStore
from modules.services.storage_service import StorageService
from modules.utils.image_utils import generate_thumbnail, load_image, placeholder_image

logger = logging.getLogger(__name__)

GENERATE_LABEL = "アイコンを生成"
GENERATING_LABEL = "AIが描いています..."


def build_callbacks(
    config: AppConfig,
    client: Optional[ImagenClient] = None,
    style_registry: Optional[StylePresetRegistry] = None,
    storage: Optional[StorageService] = None,
) -> Dict[str, Callable[..., Any]]:
    """Return a dictionary of Gradio callback functions.

    ``new_session`` creates the per-visitor ``SessionStore`` held in
    ``gr.State``; every other callback receives that store as first argument.
    """

    registry = style_registry or StylePresetRegistry.with_defaults()
    if not len(registry):
        registry = StylePresetRegistry.with_defaults()

    imagen = client or ImagenClient.from_config(config)
    exports = storage or StorageService(
        config.download_dir,
        prefix=config.download_prefix,
        max_items=config.max_downloads,
    )

    def new_session() -> SessionStore:
        return SessionStore(imagen, registry, api_key=config.api_key, storage=exports)

    def _resolve_style(preset_id: str) -> StylePreset:
        try:
            return registry.get(preset_id)
        except KeyError:
            return registry.default()

    def _to_display(image: Optional[GeneratedImage]) -> Optional[Image.Image]:
        if image is None:
            return None
        return load_image(image.image_data) or placeholder_image()

    def _history_items(store: SessionStore) -> List[Tuple[Image.Image, str]]:
        items: List[Tuple[Image.Image, str]] = []
        for entry in store.state.history:
            decoded = load_image(entry.image_data)
            thumb = generate_thumbnail(decoded) if decoded is not None else placeholder_image()
            items.append((thumb, f"{entry.source_prompt} / {entry.style_name}"))
        return items

    def _button(store: SessionStore) -> Dict[str, Any]:
        label = GENERATING_LABEL if store.state.is_generating else GENERATE_LABEL
        return gr.update(value=label, interactive=store.can_generate)

    def _render(store: SessionStore) -> Tuple[Any, ...]:
        state = store.state
        count = len(state.history)
        return (
            _to_display(state.current_image),
            state.last_error or "",
            f"#### 生成履歴 ({count})",
            _history_items(store),
            gr.update(visible=count > 0),
        )

    def on_prompt_change(store: SessionStore, prompt: str) -> Dict[str, Any]:
        store.set_prompt(prompt)
        return _button(store)

    def on_style_change(store: SessionStore, style_id: str) -> None:
        store.select_style(_resolve_style(style_id))

    def on_generation_start(store: SessionStore, prompt: str, style_id: str) -> Dict[str, Any]:
        store.set_prompt(prompt)
        store.select_style(_resolve_style(style_id))
        if not store.can_generate:
            return _button(store)
        return gr.update(value=GENERATING_LABEL, interactive=False)

    def on_generate(store: SessionStore) -> Tuple[Any, ...]:
        result = store.request_generation()
        if result is None:
            logger.debug("Generation request ignored")
        return _render(store) + (_button(store),)

    def select_history_index(store: SessionStore, index: int) -> Tuple[Any, ...]:
        history = store.state.history
        if 0 <= index < len(history):
            store.select_history_item(history[index].id)
        return _render(store)

    def on_select_history(store: SessionStore, evt: gr.SelectData) -> Tuple[Any, ...]:
        index = evt.index if isinstance(evt.index, int) else evt.index[0]
        return select_history_index(store, index)

    def on_request_clear(store: SessionStore) -> Dict[str, Any]:
        return gr.update(visible=len(store.state.history) > 0)

    def on_clear_history(store: SessionStore, confirmed: bool) -> Tuple[Any, ...]:
        store.clear_history(confirmed)
        return _render(store) + (gr.update(visible=False),)

    def on_download(store: SessionStore) -> Tuple[Dict[str, Any], str]:
        try:
            path = store.download()
        except OSError as exc:
            logger.error("Export failed: %s", exc)
            return gr.update(visible=False), f"保存に失敗しました：{exc}"
        if path is None:
            return gr.update(visible=False), "保存する画像がありません。"
        return gr.update(value=str(path), visible=True), ""

    return {
        "new_session": new_session,
        "on_prompt_change": on_prompt_change,
        "on_style_change": on_style_change,
        "on_generation_start": on_generation_start,
        "on_generate": on_generate,
        "select_history_index": select_history_index,
        "on_select_history": on_select_history,
        "on_request_clear": on_request_clear,
        "on_clear_history": on_clear_history,
        "on_download": on_download,
    }
