"""
Bottle application serving thumbnails generated on demand.
"""

import logging
from mimetypes import guess_type
from typing import Optional

from bottle import Bottle, HTTPResponse, request

from .errors import RequestError, ThumbError, UploadError, status_for
from .media import MediaClassifier, validate
from .orchestrator import ThumbnailOrchestrator
from .thumb_request import parse_thumb_path


logger = logging.getLogger(__name__)


def empty_response(status: int) -> HTTPResponse:
    return HTTPResponse(status=status, body=b'')


def thumbnail_response(req, thumbnail: bytes) -> HTTPResponse:
    content_type, _ = guess_type(req.thumb_path)
    r = HTTPResponse(status=200, body=thumbnail)
    r.set_header('Content-Type', content_type or 'application/octet-stream')
    return r


def handle_thumb(
    raw_path: str,
    orchestrator: ThumbnailOrchestrator,
    classifier: Optional[MediaClassifier] = None
) -> HTTPResponse:
    """Parse, validate and generate; map failures to an empty error response."""
    try:
        req = parse_thumb_path(raw_path, classifier)
        validate(req)
    except RequestError as e:
        logger.info(f"Rejected {raw_path}: {e}")
        return empty_response(status_for(e))

    try:
        thumbnail = orchestrator.generate(req)
    except UploadError as e:
        # The thumbnail exists even though it was not stored; deliver it.
        logger.error(f"{req.container}/{req.thumb_path}: {e}")
        return thumbnail_response(req, e.thumbnail)
    except ThumbError as e:
        status = status_for(e)
        if status >= 500:
            logger.error(f"{req.container}/{req.thumb_path}: {e}")
        else:
            logger.warning(f"{req.container}/{req.thumb_path}: {e}")
        return empty_response(status)

    return thumbnail_response(req, thumbnail)


def create_app(
    orchestrator: ThumbnailOrchestrator,
    classifier: Optional[MediaClassifier] = None
) -> Bottle:
    """Build the WSGI application; every path and method reaches the thumbnail handler."""
    app = Bottle()
    if classifier is None:
        classifier = MediaClassifier(video_enabled=orchestrator.config.video_enabled)

    @app.route('/', method='ANY')
    @app.route('/<path:path>', method='ANY')
    def thumb(path=''):
        return handle_thumb(request.path, orchestrator, classifier)

    return app
