"""
Pytest fixtures for thumbproxy tests.
"""

import pytest


class FakeRunner:
    """Stands in for tools.run_tool; records every invocation."""

    def __init__(self, output=b'thumbnail bytes', error=None):
        self.output = output
        self.error = error
        self.calls = []

    def __call__(self, command, args, stdin=None, logger=None):
        self.calls.append({'command': command, 'args': list(args), 'stdin': stdin})
        if self.error is not None:
            raise self.error
        return self.output

    @property
    def last(self):
        return self.calls[-1]


@pytest.fixture
def fake_runner():
    """Fixture providing a tool runner that returns fixed bytes."""
    return FakeRunner()


@pytest.fixture
def proxy_config(tmp_path):
    """Fixture providing a proxy configuration with a private temp directory."""
    from thumbproxy.config import ProxyConfig

    tmp_dir = tmp_path / 'tmp'
    tmp_dir.mkdir()
    return ProxyConfig(tmp_dir=str(tmp_dir))


@pytest.fixture
def store_root(tmp_path):
    """Fixture providing a local store root with a few source objects."""
    root = tmp_path / 'store'
    wiki = root / 'mywiki' / 'en'
    (wiki / 'archive').mkdir(parents=True)
    (wiki / 'Cat.jpg').write_bytes(b'jpeg source')
    (wiki / 'Movie.webm').write_bytes(b'webm source')
    (wiki / 'Clip.mp4').write_bytes(b'mp4 source')
    (wiki / 'archive' / 'Old.png').write_bytes(b'png source')

    meta = root / 'mywiki' / '.metadata' / 'en'
    meta.mkdir(parents=True)
    (meta / 'Cat.jpg.json').write_text('{"metadata": {"sha1": "abc123", "author": "tabby"}}')
    return root


@pytest.fixture
def local_store(store_root):
    """Fixture providing a LocalClient over store_root."""
    from thumbproxy.config import LocalConfig
    from thumbproxy.local_client import LocalClient

    return LocalClient(LocalConfig(root_path=str(store_root)))


@pytest.fixture
def mock_store():
    """Fixture providing a mock blob store."""
    import io
    from unittest.mock import MagicMock

    store = MagicMock()
    store.open_read.side_effect = lambda container, key: io.BytesIO(b'source bytes')
    store.get_metadata.return_value = {'sha1': 'abc123'}
    store.upload_object.return_value = None
    return store


@pytest.fixture
def orchestrator(local_store, proxy_config, fake_runner):
    """Fixture providing an orchestrator over the local store and fake runner."""
    from thumbproxy.orchestrator import ThumbnailOrchestrator

    return ThumbnailOrchestrator(local_store, proxy_config, runner=fake_runner)


@pytest.fixture
def jpg_request():
    from thumbproxy.thumb_request import parse_thumb_path
    return parse_thumb_path('/mywiki/en/thumb/Cat.jpg/100px-Cat.jpg')


@pytest.fixture
def webm_request():
    from thumbproxy.thumb_request import parse_thumb_path
    return parse_thumb_path('/mywiki/en/thumb/Movie.webm/320px-seek.jpg')


@pytest.fixture
def mp4_request():
    from thumbproxy.thumb_request import parse_thumb_path
    return parse_thumb_path('/mywiki/en/thumb/Clip.mp4/240px-Clip.mp4.jpg')
