"""
ThumbRequest - Structured form of a thumbnail request path.
"""

import re
from dataclasses import dataclass, asdict
from typing import Optional

from .errors import BadRequestShape
from .media import MediaClassifier, MediaType, DEFAULT_CLASSIFIER


# /<container>/<subpath>/thumb/[archive/|temp/]<filename>/<width>px-<thumbname>
THUMB_PATH_RE = re.compile(
    r'^/([0-9a-zA-Z_.-]+)/([0-9a-zA-Z_.-]+)/thumb/((?:archive|temp)/)?([^/]*)/(([0-9]+)px-.+)$'
)


def extension_of(name: str) -> str:
    """Lowercase text after the last '.', or '' when there is none."""
    parts = name.lower().split('.')
    if len(parts) < 2:
        return ''
    return parts[-1]


@dataclass(frozen=True)
class ThumbRequest:
    """
    A validated-shape thumbnail request.

    Attributes:
        container: Blob store bucket holding source and thumbnail
        source_path: Key of the source object
        source_ext: Lowercase source file extension ('' if none)
        target_ext: Lowercase thumbnail file extension ('' if none)
        thumb_path: Key the thumbnail is stored under
        width: Requested width in pixels, as text
        media_type: Classification of the source extension
    """
    container: str
    source_path: str
    source_ext: str
    target_ext: str
    thumb_path: str
    width: str
    media_type: MediaType

    @property
    def thumb_name(self) -> str:
        return self.thumb_path.rsplit('/', 1)[-1]

    def to_dict(self) -> dict:
        data = asdict(self)
        data['media_type'] = self.media_type.value
        return data


def parse_thumb_path(
    raw_path: str,
    classifier: Optional[MediaClassifier] = None
) -> ThumbRequest:
    """
    Decompose a request path into a ThumbRequest.

    Args:
        raw_path: Decoded request path, without query string
        classifier: Media classifier to use (default: video-enabled table)

    Raises:
        BadRequestShape: the path does not have the thumbnail layout
    """
    classifier = classifier or DEFAULT_CLASSIFIER
    m = THUMB_PATH_RE.fullmatch(raw_path or '')
    if m is None:
        raise BadRequestShape(f"Bad thumb path: {raw_path!r}")

    container, subpath, arch_or_temp, filename, thumbname, width = m.groups()
    arch_or_temp = arch_or_temp or ''
    source_ext = extension_of(filename)

    return ThumbRequest(
        container=container,
        source_path=f"{subpath}/{arch_or_temp}{filename}",
        source_ext=source_ext,
        target_ext=extension_of(thumbname),
        thumb_path=f"{subpath}/thumb/{arch_or_temp}{filename}/{thumbname}",
        width=width,
        media_type=classifier.classify(source_ext),
    )
