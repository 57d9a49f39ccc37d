"""SessionStore unit tests."""

from __future__ import annotations

import copy
import threading
from typing import Callable, Optional

import pytest

from modules.generation.errors import MissingCredentialError, RequestFailedError
from modules.generation.imagen_client import GeneratedImage, GenerationResult, next_image_id
from modules.generation.style_presets import StylePreset, StylePresetRegistry
from modules.services.session_store import SessionStore
from modules.services.storage_service import StorageService


class DummyClient:
    """Stub generation client returning queued outcomes."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, StylePreset, Optional[str]]] = []
        self.fail_with: Optional[Exception] = None
        self.raise_error: Optional[Exception] = None
        self.during_call: Optional[Callable[[], None]] = None

    def generate(self, prompt: str, style: StylePreset, api_key: Optional[str]) -> GenerationResult:
        self.calls.append((prompt, style, api_key))
        if self.during_call is not None:
            self.during_call()
        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_with is not None:
            return GenerationResult.failure(self.fail_with)
        if not api_key:
            return GenerationResult.failure(MissingCredentialError())
        return GenerationResult.success(
            GeneratedImage(
                id=next_image_id(),
                image_data=b"\x00\x00\x00",
                source_prompt=prompt,
                style_name=style.display_name,
            )
        )


@pytest.fixture
def registry() -> StylePresetRegistry:
    return StylePresetRegistry.with_defaults()


def build_store(registry, client=None, api_key="test-key", storage=None) -> SessionStore:
    return SessionStore(client or DummyClient(), registry, api_key=api_key, storage=storage)


def test_initial_state(registry):
    store = build_store(registry)
    state = store.state

    assert state.selected_style == registry.default()
    assert state.prompt_text == ""
    assert state.is_generating is False
    assert state.last_error is None
    assert state.current_image is None
    assert len(state.history) == 0
    assert store.can_generate is False


def test_successful_generation_updates_current_and_history(registry):
    client = DummyClient()
    store = build_store(registry, client)
    store.set_prompt("  cyberpunk cat  ")
    store.select_style("flat")

    result = store.request_generation()

    assert result is not None and result.ok
    state = store.state
    assert state.current_image is result.image
    assert state.current_image.source_prompt == "cyberpunk cat"
    assert state.current_image.style_name == "フラットデザイン"
    assert len(state.history) == 1
    assert state.is_generating is False
    assert client.calls[0][0] == "cyberpunk cat"
    assert client.calls[0][2] == "test-key"


def test_history_is_prepend_only(registry):
    store = build_store(registry)
    generated = []
    for index in range(3):
        store.set_prompt(f"prompt {index}")
        generated.append(store.request_generation().image)

    history = store.state.history.list()
    assert len(history) == 3
    assert history == list(reversed(generated))
    assert store.state.current_image is generated[-1]


def test_same_prompt_twice_is_not_deduplicated(registry):
    store = build_store(registry)
    store.set_prompt("cat")
    store.request_generation()
    store.request_generation()

    assert len(store.state.history) == 2


@pytest.mark.parametrize("prompt", ["", "   ", "\n"])
def test_blank_prompt_never_calls_client(registry, prompt):
    client = DummyClient()
    store = build_store(registry, client)
    store.set_prompt(prompt)

    assert store.request_generation() is None
    assert client.calls == []
    assert store.state.is_generating is False


def test_request_while_generating_is_ignored(registry):
    client = DummyClient()
    store = build_store(registry, client)
    store.set_prompt("cat")
    nested_results = []

    def reenter() -> None:
        assert store.state.is_generating is True
        assert store.can_generate is False
        nested_results.append(store.request_generation())

    client.during_call = reenter
    store.request_generation()

    assert nested_results == [None]
    assert len(client.calls) == 1
    assert len(store.state.history) == 1
    assert store.state.is_generating is False


def test_failed_generation_keeps_previous_state(registry):
    client = DummyClient()
    store = build_store(registry, client)
    store.set_prompt("cyberpunk cat")
    first = store.request_generation().image

    client.fail_with = RequestFailedError(429)
    result = store.request_generation()

    assert isinstance(result.error, RequestFailedError)
    assert result.error.status_code == 429
    state = store.state
    assert "429" in state.last_error
    assert state.current_image is first
    assert state.history.list() == [first]
    assert state.is_generating is False


def test_error_is_cleared_on_next_request(registry):
    client = DummyClient()
    store = build_store(registry, client)
    store.set_prompt("cat")
    client.fail_with = RequestFailedError(500)
    store.request_generation()
    assert store.state.last_error

    client.fail_with = None
    store.request_generation()

    assert store.state.last_error is None


def test_missing_credential_sets_error(registry):
    store = build_store(registry, api_key=None)
    store.set_prompt("cat")

    result = store.request_generation()

    assert isinstance(result.error, MissingCredentialError)
    assert store.state.last_error == MissingCredentialError().user_message
    assert len(store.state.history) == 0


def test_client_exception_becomes_unexpected_error(registry):
    client = DummyClient()
    client.raise_error = RuntimeError("boom")
    store = build_store(registry, client)
    store.set_prompt("cat")

    result = store.request_generation()

    assert not result.ok
    assert result.error.kind == "unexpected"
    assert store.state.last_error
    assert store.state.is_generating is False


def test_select_history_item(registry):
    store = build_store(registry)
    store.set_prompt("first")
    first = store.request_generation().image
    store.set_prompt("second")
    store.request_generation()

    assert store.select_history_item(first.id) is True
    assert store.state.current_image is first


def test_select_unknown_history_item_is_noop(registry):
    store = build_store(registry)
    store.set_prompt("first")
    current = store.request_generation().image

    assert store.select_history_item(-1) is False
    assert store.state.current_image is current


def test_clear_history_requires_confirmation(registry):
    store = build_store(registry)
    store.set_prompt("cat")
    current = store.request_generation().image

    assert store.clear_history(confirmed=False) is False
    assert store.state.current_image is current
    assert len(store.state.history) == 1

    assert store.clear_history(confirmed=True) is True
    assert store.state.current_image is None
    assert len(store.state.history) == 0


def test_select_style_by_id_and_unknown(registry):
    store = build_store(registry)

    store.select_style("pixel")
    assert store.state.selected_style.display_name == "ドット絵"

    with pytest.raises(KeyError):
        store.select_style("missing")
    assert store.state.selected_style.id == "pixel"


def test_download_exports_current_image(registry, tmp_path):
    storage = StorageService(tmp_path, prefix="sns-icon")
    store = build_store(registry, storage=storage)
    assert store.download() is None

    store.set_prompt("cat")
    image = store.request_generation().image
    history_before = store.state.history.list()

    path = store.download()

    assert path is not None
    assert path.name.startswith("sns-icon-")
    assert path.suffix == ".png"
    assert path.read_bytes() == image.image_data
    assert store.state.history.list() == history_before
    assert store.state.current_image is image


def test_deepcopy_starts_a_fresh_session_sharing_services(registry, tmp_path):
    client = DummyClient()
    storage = StorageService(tmp_path)
    store = build_store(registry, client, storage=storage)
    store.set_prompt("cat")
    store.request_generation()

    copied = copy.deepcopy(store)

    assert copied is not store
    assert copied.state.prompt_text == ""
    assert copied.state.current_image is None
    assert len(copied.state.history) == 0
    assert len(store.state.history) == 1

    copied.set_prompt("dog")
    copied.request_generation()
    assert len(client.calls) == 2
    assert copied.download().parent == tmp_path


def test_setters_wait_for_the_store_lock(registry):
    store = build_store(registry)
    store.set_prompt("cat")
    first = store.request_generation().image
    store.set_prompt("dog")
    second = store.request_generation().image

    store._lock.acquire()
    try:
        workers = [
            threading.Thread(target=store.set_prompt, args=("bird",)),
            threading.Thread(target=store.select_style, args=("pixel",)),
            threading.Thread(target=store.select_history_item, args=(first.id,)),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=0.2)

        assert all(worker.is_alive() for worker in workers)
        assert store.state.prompt_text == "dog"
        assert store.state.selected_style.id == "flat"
        assert store.state.current_image is second
    finally:
        store._lock.release()

    for worker in workers:
        worker.join(timeout=2)
    assert store.state.prompt_text == "bird"
    assert store.state.selected_style.id == "pixel"
    assert store.state.current_image is first
