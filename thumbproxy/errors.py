"""
Errors - Failure taxonomy for thumbnail requests and its HTTP mapping.
"""

from enum import Enum
from typing import Optional


class StorageError(Exception):
    """Raised by a blob store client when an operation fails."""
    pass


class ObjectNotFound(StorageError):
    """Raised by a blob store client when the requested object does not exist."""
    pass


class ThumbError(Exception):
    """
    Base class for every failure of a thumbnail request.

    Attributes:
        step: Name of the processing step that failed
        cause: Underlying exception, if any
    """

    default_step = 'thumb'

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.step = step or self.default_step
        self.cause = cause

    def __str__(self) -> str:
        text = f"{self.step}: {self.args[0]}"
        if self.cause is not None:
            text += f" ({self.cause})"
        return text


class RequestError(ThumbError):
    """Request rejected before any work was done."""
    pass


class BadRequestShape(RequestError):
    default_step = 'parse'


class UnsupportedSource(RequestError):
    default_step = 'validate'


class UnsupportedTarget(RequestError):
    default_step = 'validate'


class SourceNotFound(ThumbError):
    default_step = 'open_read'


class SourceReadError(ThumbError):
    default_step = 'open_read'


class MetadataReadError(ThumbError):
    default_step = 'get_metadata'


class NoHandlerForMediaType(ThumbError):
    default_step = 'select_strategy'


class GenerationFailed(ThumbError):
    """The external tool exited non-zero; stderr is kept for diagnostics."""

    default_step = 'invoke_tool'

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None,
        stderr: bytes = b''
    ):
        super().__init__(message, step, cause)
        self.stderr = stderr


class UploadError(ThumbError):
    """
    The thumbnail was generated but could not be stored.

    The generated bytes travel with the error so the caller can still
    deliver them.
    """

    default_step = 'upload'

    def __init__(
        self,
        message: str,
        thumbnail: bytes,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message, step, cause)
        self.thumbnail = thumbnail


class ResponseClass(Enum):
    """HTTP outcome for a failed request."""
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_ERROR = 500

    @property
    def status(self) -> int:
        return self.value


RESPONSE_CLASSES = {
    BadRequestShape: ResponseClass.BAD_REQUEST,
    UnsupportedSource: ResponseClass.BAD_REQUEST,
    UnsupportedTarget: ResponseClass.BAD_REQUEST,
    SourceNotFound: ResponseClass.NOT_FOUND,
    SourceReadError: ResponseClass.INTERNAL_ERROR,
    MetadataReadError: ResponseClass.INTERNAL_ERROR,
    NoHandlerForMediaType: ResponseClass.INTERNAL_ERROR,
    GenerationFailed: ResponseClass.INTERNAL_ERROR,
    UploadError: ResponseClass.INTERNAL_ERROR,
}


def response_class_for(error: ThumbError) -> ResponseClass:
    """Map a thumbnail failure to its response class."""
    for cls in type(error).__mro__:
        if cls in RESPONSE_CLASSES:
            return RESPONSE_CLASSES[cls]
    return ResponseClass.INTERNAL_ERROR


def status_for(error: ThumbError) -> int:
    """Map a thumbnail failure to an HTTP status code."""
    return response_class_for(error).status
