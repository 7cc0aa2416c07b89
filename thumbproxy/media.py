"""
Media - Source media classification and the source/target compatibility matrix.
"""

from enum import Enum
from typing import FrozenSet

from .errors import UnsupportedSource, UnsupportedTarget


class MediaType(Enum):
    IMAGE = 'image'
    VIDEO = 'video'
    UNRECOGNIZED = 'unrecognized'


IMAGE_EXTENSIONS = frozenset({'png', 'gif', 'jpg', 'jpeg', 'webp'})
VIDEO_EXTENSIONS = frozenset({'mp4', 'ogg', 'ogv', 'webm'})

# Vector sources are rasterized, so they never keep their own extension.
VECTOR_EXTENSIONS = frozenset({'svg'})
VECTOR_TARGET = 'png'

VIDEO_TARGET = 'jpg'


class MediaClassifier:
    """
    Maps a lowercase file extension to a MediaType.

    Image-only deployments (video_enabled=False) recognise SVG sources and
    treat every video extension as unrecognized.
    """

    def __init__(self, video_enabled: bool = True):
        self.video_enabled = video_enabled
        if video_enabled:
            self.image_extensions = IMAGE_EXTENSIONS
            self.video_extensions = VIDEO_EXTENSIONS
        else:
            self.image_extensions = IMAGE_EXTENSIONS | VECTOR_EXTENSIONS
            self.video_extensions = frozenset()

    @property
    def supported_extensions(self) -> FrozenSet[str]:
        return self.image_extensions | self.video_extensions

    def classify(self, extension: str) -> MediaType:
        if extension in self.image_extensions:
            return MediaType.IMAGE
        if extension in self.video_extensions:
            return MediaType.VIDEO
        return MediaType.UNRECOGNIZED


DEFAULT_CLASSIFIER = MediaClassifier()


def classify(extension: str) -> MediaType:
    """Classify an extension with the default (video-enabled) table."""
    return DEFAULT_CLASSIFIER.classify(extension)


def allowed_target(media_type: MediaType, source_ext: str):
    """Return the one target extension allowed for a source, or None."""
    if media_type is MediaType.IMAGE:
        if source_ext in VECTOR_EXTENSIONS:
            return VECTOR_TARGET
        return source_ext
    if media_type is MediaType.VIDEO:
        return VIDEO_TARGET
    return None


def validate(req) -> None:
    """
    Check that a parsed request asks for a supported conversion.

    Raises:
        UnsupportedSource: the source extension is not a recognized media type
        UnsupportedTarget: the thumbnail extension is missing or not allowed
            for this source
    """
    if req.media_type is MediaType.UNRECOGNIZED:
        raise UnsupportedSource(f"Unsupported source file extension: {req.source_ext!r}")

    if not req.target_ext:
        raise UnsupportedTarget("Thumbnail name has no file extension")

    # JPEG and JPG are not mixed; the names must match exactly.
    if req.target_ext != allowed_target(req.media_type, req.source_ext):
        raise UnsupportedTarget(
            f"Unsupported thumbnail file extension {req.target_ext!r} "
            f"for {req.media_type.value} source {req.source_ext!r}"
        )


def is_supported(req) -> bool:
    try:
        validate(req)
    except (UnsupportedSource, UnsupportedTarget):
        return False
    return True
