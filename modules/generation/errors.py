"""Failure kinds reported by the image generation client."""

from __future__ import annotations

from typing import Optional


class GenerationError(Exception):
    """Base class for generation failures.

    ``user_message`` is the text shown in the UI; ``str(error)`` carries the
    same text so the error can be logged or raised as-is.
    """

    kind = "generation"
    default_message = "予期せぬエラーが発生しました"

    def __init__(self, message: Optional[str] = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class EmptyPromptError(GenerationError):
    kind = "empty_prompt"
    default_message = "プロンプトを入力してください。"


class MissingCredentialError(GenerationError):
    kind = "missing_credential"
    default_message = "APIキーが設定されていません。環境変数 GEMINI_API_KEY を確認してください。"


class RequestFailedError(GenerationError):
    """The endpoint answered with a non-success HTTP status."""

    kind = "request_failed"

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(
            f"生成に失敗しました ({status_code})。APIキーまたはクォータを確認してください。"
        )


class EmptyResponseError(GenerationError):
    kind = "empty_response"
    default_message = "画像データが取得できませんでした。"


class UnexpectedError(GenerationError):
    kind = "unexpected"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        message = self.default_message
        if detail:
            message = f"{message}：{detail}"
        super().__init__(message)
