"""
Error taxonomy for the item analysis pipeline.

Fatal errors abort the run before anything is written. Non-fatal
conditions (empty OCR, anchor lookup failure, no correction history)
are never raised.
"""

from typing import Optional


class ItemAnalysisError(Exception):
    """Base class for pipeline errors; carries the HTTP status to report."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingInputError(ItemAnalysisError):
    """item_id or image_url absent; rejected before any model call."""

    status_code = 400


class ModelUnavailableError(ItemAnalysisError):
    """A model call failed (transport error, API error, malformed payload)."""

    status_code = 502

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(f"{model}: {message}" if model else message)
        self.model = model


class MalformedAnalysisError(ItemAnalysisError):
    """The reasoning response held no valid analysis object."""

    status_code = 502


class PersistenceError(ItemAnalysisError):
    """The record store write failed."""

    status_code = 500


class AnalysisTimeoutError(ItemAnalysisError):
    """The overall request timeout elapsed; nothing was persisted."""

    status_code = 504
