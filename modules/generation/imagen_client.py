"""Client for the Imagen ``:predict`` text-to-image endpoint."""

from __future__ import annotations

import base64
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests

from config.settings import DEFAULT_API_BASE_URL, DEFAULT_MODEL_ID, AppConfig
from modules.generation.errors import (
    EmptyPromptError,
    EmptyResponseError,
    GenerationError,
    MissingCredentialError,
    RequestFailedError,
    UnexpectedError,
)
from modules.generation.style_presets import StylePreset

logger = logging.getLogger(__name__)

PROMPT_PREFIX = "Icon of "
PROMPT_QUALITY_SUFFIX = "high quality, no text, no watermark"


@dataclass(frozen=True, slots=True)
class GeneratedImage:
    """One successfully generated icon."""

    id: int
    image_data: bytes
    source_prompt: str
    style_name: str
    mime_type: str = "image/png"


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Tagged result: exactly one of ``image`` or ``error`` is set."""

    image: Optional[GeneratedImage] = None
    error: Optional[GenerationError] = None

    @classmethod
    def success(cls, image: GeneratedImage) -> "GenerationResult":
        return cls(image=image)

    @classmethod
    def failure(cls, error: GenerationError) -> "GenerationResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.image is not None


_id_lock = threading.Lock()
_last_id = 0


def next_image_id() -> int:
    """Return a millisecond timestamp, strictly greater than any issued before."""
    global _last_id
    with _id_lock:
        candidate = time.time_ns() // 1_000_000
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return candidate


def compose_prompt(prompt: str, style: StylePreset) -> str:
    """Build the text sent to the model for ``prompt`` rendered in ``style``."""
    return f"{PROMPT_PREFIX}{prompt}, {style.prompt_suffix}, {PROMPT_QUALITY_SUFFIX}"


def _redact(text: str, secret: Optional[str]) -> str:
    if secret:
        return text.replace(secret, "***")
    return text


class ImagenClient:
    """Stateless facade around a single Imagen predict call.

    ``generate`` never raises: failures come back as ``GenerationResult``
    values so the caller can show them without exception handling.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        model_id: str = DEFAULT_MODEL_ID,
        timeout: Optional[float] = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(
        cls, config: AppConfig, session: Optional[requests.Session] = None
    ) -> "ImagenClient":
        return cls(
            base_url=config.api_base_url,
            model_id=config.model_id,
            timeout=config.request_timeout,
            session=session,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model_id}:predict"

    def build_payload(self, full_prompt: str) -> dict[str, Any]:
        """Return the JSON body requesting one square sample."""
        return {
            "instances": [{"prompt": full_prompt}],
            "parameters": {"sampleCount": 1, "aspectRatio": "1:1"},
        }

    def generate(
        self, prompt: str, style: StylePreset, api_key: Optional[str]
    ) -> GenerationResult:
        """Generate one icon for ``prompt`` in ``style``."""
        try:
            image = self._request_image(prompt, style, api_key)
        except GenerationError as exc:
            logger.warning("Icon generation failed (%s): %s", exc.kind, exc)
            return GenerationResult.failure(exc)
        except requests.RequestException as exc:
            logger.error(
                "Request to %s failed: %s",
                self.endpoint,
                _redact(str(exc), api_key),
            )
            return GenerationResult.failure(UnexpectedError(type(exc).__name__))
        except ValueError as exc:
            logger.error("Malformed response from %s: %s", self.endpoint, exc)
            return GenerationResult.failure(UnexpectedError("レスポンスを解析できませんでした。"))

        logger.info("Generated icon %s (%d bytes)", image.id, len(image.image_data))
        return GenerationResult.success(image)

    # Internal helpers ---------------------------------------------------------
    def _request_image(
        self, prompt: str, style: StylePreset, api_key: Optional[str]
    ) -> GeneratedImage:
        if not prompt or not prompt.strip():
            raise EmptyPromptError()
        if not api_key or not api_key.strip():
            raise MissingCredentialError()

        full_prompt = compose_prompt(prompt, style)
        logger.debug("Requesting icon: %s", full_prompt)

        response = self._session.post(
            self.endpoint,
            params={"key": api_key},
            json=self.build_payload(full_prompt),
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

        if not 200 <= response.status_code < 300:
            logger.error(
                "Image endpoint returned %s: %s",
                response.status_code,
                _redact(response.text[:500], api_key),
            )
            raise RequestFailedError(response.status_code)

        encoded = self._extract_image_payload(response.json())
        return GeneratedImage(
            id=next_image_id(),
            image_data=base64.b64decode(encoded, validate=True),
            source_prompt=prompt,
            style_name=style.display_name,
        )

    def _extract_image_payload(self, body: Any) -> str:
        if not isinstance(body, dict):
            raise ValueError(f"unexpected response body type {type(body).__name__}")

        predictions = body.get("predictions")
        if not isinstance(predictions, list) or not predictions:
            raise EmptyResponseError()

        first = predictions[0]
        encoded = first.get("bytesBase64Encoded") if isinstance(first, dict) else None
        if not encoded:
            raise EmptyResponseError()
        return encoded
