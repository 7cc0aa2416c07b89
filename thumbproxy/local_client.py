"""
LocalClient - Filesystem blob store with the same interface as S3Client.

Objects live at <root>/<container>/<key>; user metadata is kept in a JSON
sidecar under <root>/<container>/.metadata/<key>.json.
"""

import json
import logging
import os
import tempfile
from typing import Dict, Optional

from .config import LocalConfig
from .errors import ObjectNotFound, StorageError


METADATA_DIR = '.metadata'


class LocalClient:
    """Blob store backed by a local directory tree."""

    def __init__(self, config: LocalConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.root = os.path.realpath(config.root_path)

    def _resolve(self, container: str, *parts: str) -> str:
        """Return the absolute path for a container-relative location."""
        path = os.path.realpath(os.path.join(self.root, container, *parts))
        container_root = os.path.realpath(os.path.join(self.root, container))
        if os.path.commonpath([self.root, container_root]) != self.root or container_root == self.root:
            raise StorageError(f"Invalid container: {container!r}")
        if os.path.commonpath([container_root, path]) != container_root or path == container_root:
            raise StorageError(f"Invalid key: {os.path.join(*parts)!r}")
        return path

    def object_path(self, container: str, key: str) -> str:
        return self._resolve(container, key)

    def metadata_path(self, container: str, key: str) -> str:
        return self._resolve(container, METADATA_DIR, key + '.json')

    def open_read(self, container: str, key: str):
        path = self.object_path(container, key)
        self.logger.debug(f"Reading {path}")
        if not os.path.isfile(path):
            raise ObjectNotFound(f"No such object: {container}/{key}")
        try:
            return open(path, 'rb')
        except OSError as e:
            raise StorageError(f"Error opening {container}/{key}: {e}") from e

    def get_metadata(self, container: str, key: str) -> Dict[str, str]:
        if not os.path.isfile(self.object_path(container, key)):
            raise ObjectNotFound(f"No such object: {container}/{key}")

        meta_path = self.metadata_path(container, key)
        if not os.path.exists(meta_path):
            return {}
        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                return dict(json.load(f).get('metadata', {}))
        except (OSError, ValueError) as e:
            raise StorageError(f"Error reading metadata of {container}/{key}: {e}") from e

    def upload_object(
        self,
        container: str,
        key: str,
        data: bytes,
        metadata: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None
    ) -> None:
        path = self.object_path(container, key)
        meta_path = self.metadata_path(container, key)
        self.logger.debug(f"Writing {path} ({len(data)} bytes)")
        try:
            self._atomic_write(path, data)
            sidecar = {'metadata': dict(metadata or {}), 'content_type': content_type}
            self._atomic_write(meta_path, json.dumps(sidecar, indent=2, sort_keys=True).encode('utf-8'))
        except OSError as e:
            raise StorageError(f"Error writing {container}/{key}: {e}") from e

    @staticmethod
    def _atomic_write(path: str, data: bytes) -> None:
        directory = os.path.dirname(path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.upload_')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
