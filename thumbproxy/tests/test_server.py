"""Tests for the Bottle application, driven through its WSGI callable."""

from unittest.mock import MagicMock
from wsgiref.util import setup_testing_defaults

import pytest

from thumbproxy.errors import GenerationFailed, StorageError, UploadError
from thumbproxy.orchestrator import ThumbnailOrchestrator
from thumbproxy.server import create_app


def call_app(app, path, method='GET'):
    """Issue a request against a WSGI app and return (status, headers, body)."""
    environ = {'PATH_INFO': path, 'REQUEST_METHOD': method}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured['status'] = int(status.split()[0])
        captured['headers'] = dict(headers)

    body = b''.join(app(environ, start_response))
    return captured['status'], captured['headers'], body


@pytest.fixture
def app(orchestrator):
    return create_app(orchestrator)


class TestThumbEndpoint:
    """End-to-end tests over the local store and a fake tool runner."""

    def test_image_thumbnail(self, app, fake_runner):
        status, headers, body = call_app(app, '/mywiki/en/thumb/Cat.jpg/100px-Cat.jpg')

        assert status == 200
        assert body == b'thumbnail bytes'
        assert headers['Content-Type'] == 'image/jpeg'
        assert fake_runner.last['args'][0] == '--output=.jpg[strip,Q=96]'

    def test_video_thumbnail(self, app, fake_runner):
        status, _, body = call_app(app, '/mywiki/en/thumb/Movie.webm/320px-seek.jpg')

        assert status == 200
        assert body == b'thumbnail bytes'
        assert fake_runner.last['command'] == 'ffmpeg'
        assert 'scale=320:-1' in fake_runner.last['args']

    def test_any_method(self, app):
        status, _, _ = call_app(app, '/mywiki/en/thumb/Cat.jpg/100px-Cat.jpg', method='POST')

        assert status == 200

    def test_unsupported_source(self, app, fake_runner):
        status, _, body = call_app(app, '/mywiki/en/thumb/doc.pdf/50px-doc.pdf')

        assert status == 400
        assert body == b''
        assert fake_runner.calls == []

    def test_unsupported_target(self, app):
        status, _, body = call_app(app, '/mywiki/en/thumb/Cat.jpg/100px-Cat.png')

        assert status == 400
        assert body == b''

    @pytest.mark.parametrize('path', ['/', '/favicon.ico', '/mywiki/en/thumb/Cat.jpg/wide-Cat.jpg'])
    def test_bad_shape(self, app, path):
        status, _, body = call_app(app, path)

        assert status == 400
        assert body == b''

    def test_source_not_found(self, app):
        status, _, body = call_app(app, '/mywiki/en/thumb/Missing.jpg/100px-Missing.jpg')

        assert status == 404
        assert body == b''

    @pytest.mark.parametrize('name', ['What?.png', 'Sharp#1.png'])
    def test_query_and_fragment_characters_in_filename(self, app, store_root, fake_runner, name):
        (store_root / 'mywiki' / 'en' / name).write_bytes(b'png source')

        status, headers, body = call_app(app, f'/mywiki/en/thumb/{name}/100px-{name}')

        assert status == 200
        assert body == b'thumbnail bytes'
        assert headers['Content-Type'] == 'image/png'
        assert fake_runner.last['stdin'] == b'png source'

    def test_second_request_identical(self, app):
        first = call_app(app, '/mywiki/en/thumb/Cat.jpg/100px-Cat.jpg')
        second = call_app(app, '/mywiki/en/thumb/Cat.jpg/100px-Cat.jpg')

        assert first[2] == second[2]


class TestErrorResponses:
    """Tests for orchestrator failures mapped to responses."""

    @pytest.fixture
    def mock_orchestrator(self, proxy_config):
        orchestrator = MagicMock(spec=ThumbnailOrchestrator)
        orchestrator.config = proxy_config
        return orchestrator

    def test_generation_failed(self, mock_orchestrator):
        mock_orchestrator.generate.side_effect = GenerationFailed('vipsthumbnail exited with status 1')
        app = create_app(mock_orchestrator)

        status, _, body = call_app(app, '/mywiki/en/thumb/Cat.jpg/100px-Cat.jpg')

        assert status == 500
        assert body == b''

    def test_upload_error_still_delivers(self, mock_orchestrator):
        mock_orchestrator.generate.side_effect = UploadError(
            'Cannot store', thumbnail=b'made it', cause=StorageError('read-only')
        )
        app = create_app(mock_orchestrator)

        status, headers, body = call_app(app, '/mywiki/en/thumb/Cat.png/100px-Cat.png')

        assert status == 200
        assert body == b'made it'
        assert headers['Content-Type'] == 'image/png'

    def test_frame_content_type_from_thumb_name(self, mock_orchestrator):
        mock_orchestrator.generate.return_value = b'frame'
        app = create_app(mock_orchestrator)

        status, headers, _ = call_app(app, '/mywiki/en/thumb/Movie.ogv/100px-Movie.ogv.jpg')

        assert status == 200
        assert headers['Content-Type'] == 'image/jpeg'

    def test_validation_happens_before_orchestrator(self, mock_orchestrator):
        app = create_app(mock_orchestrator)

        status, _, _ = call_app(app, '/mywiki/en/thumb/Movie.webm/100px-Movie.webm')

        assert status == 400
        mock_orchestrator.generate.assert_not_called()
