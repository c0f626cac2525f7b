from __future__ import annotations

from typing import Optional

class ArticleServiceError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        retryable: bool = False,
        public_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.retryable = retryable
        if public_message is not None:
            self.public_message = public_message

class InvalidInputError(ArticleServiceError):
    status_code = 400

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("public_message", message)
        super().__init__(message, **kwargs)

class AuthenticationError(ArticleServiceError):
    status_code = 401
    public_message = "Authentication required"

class NotFoundError(ArticleServiceError):
    status_code = 404

    def __init__(self, message: str, **kwargs) -> None:
        kwargs.setdefault("public_message", message)
        super().__init__(message, **kwargs)

class RateLimitedError(ArticleServiceError):
    status_code = 429

    def __init__(self, message: str, retry_after: int = 0) -> None:
        super().__init__(message, public_message=message)
        self.retry_after = retry_after

_STAGE_MESSAGES = {
    "text": "Failed to generate article text",
    "image": "Failed to generate article image",
    "audio": "Failed to generate article audio",
}

class ProviderError(ArticleServiceError):
    """The text, image or speech provider failed or returned unusable data."""

    def __init__(self, message: str, *, stage: str, retryable: bool = False) -> None:
        super().__init__(
            message,
            stage=stage,
            retryable=retryable,
            public_message=_STAGE_MESSAGES.get(stage, "Generation provider failed"),
        )

class SchemaValidationError(ArticleServiceError):
    public_message = "The generation provider returned a malformed article"

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="validate")

class DownloadError(ArticleServiceError):
    public_message = "Failed to download generated media"

    def __init__(self, message: str, *, status: Optional[int] = None, retryable: bool = False) -> None:
        super().__init__(message, stage="image", retryable=retryable)
        self.status = status

class UploadError(ArticleServiceError):
    public_message = "Failed to store generated media"

    def __init__(self, message: str, *, stage: str = "image") -> None:
        super().__init__(message, stage=stage, retryable=True)

class DatabaseError(ArticleServiceError):
    public_message = "Failed to save article"

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="persist")
