from __future__ import annotations


class MigrationError(Exception):
    """Base class for failures that abort a pipeline run."""


class ConfigurationError(MigrationError):
    """Raised before any request is sent, e.g. when no API key is available."""


class ProviderError(MigrationError):
    def __init__(self, provider: str, model: str, cause: object) -> None:
        self.provider = provider
        self.model = model
        self.cause = cause
        super().__init__(f"{provider} error ({model}): {cause}")


class ExtractionError(MigrationError):
    def __init__(self, message: str, raw_text: str = "") -> None:
        self.raw_text = raw_text
        super().__init__(message)
