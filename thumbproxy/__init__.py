"""
On-demand thumbnail proxy.

Request paths name a source object in a blob store and a thumbnail width:
    /<container>/<subpath>/thumb/[archive/|temp/]<filename>/<width>px-<thumbname>

The source is fetched, scaled by vipsthumbnail (images) or ffmpeg (video
frames), stored next to the source under thumb/ and returned to the client.
"""

__version__ = "1.0.0"

from .errors import (
    ThumbError,
    RequestError,
    BadRequestShape,
    UnsupportedSource,
    UnsupportedTarget,
    SourceNotFound,
    SourceReadError,
    MetadataReadError,
    GenerationFailed,
    UploadError,
    NoHandlerForMediaType,
    StorageError,
    ObjectNotFound,
    ResponseClass,
    response_class_for,
    status_for,
)
from .media import MediaType, MediaClassifier, classify, validate
from .thumb_request import ThumbRequest, parse_thumb_path
from .config import S3Config, LocalConfig, ProxyConfig
from .s3_client import S3Client
from .local_client import LocalClient
from .orchestrator import ThumbnailOrchestrator

__all__ = [
    "ThumbError",
    "RequestError",
    "BadRequestShape",
    "UnsupportedSource",
    "UnsupportedTarget",
    "SourceNotFound",
    "SourceReadError",
    "MetadataReadError",
    "GenerationFailed",
    "UploadError",
    "NoHandlerForMediaType",
    "StorageError",
    "ObjectNotFound",
    "ResponseClass",
    "response_class_for",
    "status_for",
    "MediaType",
    "MediaClassifier",
    "classify",
    "validate",
    "ThumbRequest",
    "parse_thumb_path",
    "S3Config",
    "LocalConfig",
    "ProxyConfig",
    "S3Client",
    "LocalClient",
    "ThumbnailOrchestrator",
]
