"""
ThumbnailOrchestrator - Fetches a source object, runs the external tool and
stores the resulting thumbnail.
"""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from mimetypes import guess_type
from typing import Callable, Dict, Iterator, List, Optional

from .config import ProxyConfig
from .errors import (
    GenerationFailed, MetadataReadError, NoHandlerForMediaType, ObjectNotFound,
    SourceNotFound, SourceReadError, StorageError, UploadError,
)
from .thumb_request import ThumbRequest
from .tools import (
    FFMPEG, FILE, VIPS, SourceInput, ToolStrategy, build_strategy_table, run_tool,
)


ToolRunner = Callable[..., bytes]

COPY_CHUNK_SIZE = 64 * 1024


class ThumbnailOrchestrator:
    """
    Generates one thumbnail per call, start to finish.

    The store is any object with open_read/get_metadata/upload_object
    (S3Client or LocalClient). The runner executes a tool and returns its
    stdout; it defaults to tools.run_tool.
    """

    def __init__(
        self,
        store,
        config: Optional[ProxyConfig] = None,
        runner: Optional[ToolRunner] = None,
        strategies: Optional[Dict[str, ToolStrategy]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.config = config or ProxyConfig()
        self.runner = runner or run_tool
        self.logger = logger or logging.getLogger(__name__)
        if strategies is None:
            strategies = build_strategy_table(
                file_formats=self.config.file_formats,
                include_video=self.config.video_enabled,
                include_vector=not self.config.video_enabled,
            )
        self.strategies = strategies
        self.commands = {
            VIPS: self.config.vips_command,
            FFMPEG: self.config.ffmpeg_command,
        }

    def strategy_for(self, req: ThumbRequest) -> ToolStrategy:
        strategy = self.strategies.get(req.source_ext)
        if strategy is None:
            raise NoHandlerForMediaType(
                f"No handler for {req.media_type.value} source {req.source_ext!r}"
            )
        return strategy

    def build_command(self, req: ThumbRequest, source: SourceInput) -> List[str]:
        """Return the full argument vector (executable first) for a request."""
        strategy = self.strategy_for(req)
        args = strategy.build_args(req, source, jpeg_quality=self.config.jpeg_quality)
        return [self.commands.get(strategy.tool, strategy.tool)] + args

    def generate(self, req: ThumbRequest) -> bytes:
        """
        Generate, store and return the thumbnail for a validated request.

        Raises:
            SourceNotFound: the source object does not exist
            SourceReadError: the source could not be read
            MetadataReadError: the source metadata could not be read
            NoHandlerForMediaType: no tool handles the source extension
            GenerationFailed: the tool failed
            UploadError: the thumbnail could not be stored; carries the bytes
        """
        reader = self._open_source(req)
        try:
            metadata = self._source_metadata(req)
            strategy = self.strategy_for(req)
            with self._materialize(req, reader, strategy) as source:
                thumbnail = self._invoke(req, strategy, source)
        finally:
            reader.close()

        self._upload(req, thumbnail, metadata)
        return thumbnail

    def _open_source(self, req: ThumbRequest):
        try:
            return self.store.open_read(req.container, req.source_path)
        except ObjectNotFound as e:
            raise SourceNotFound(
                f"Source not found: {req.container}/{req.source_path}", cause=e
            ) from e
        except StorageError as e:
            raise SourceReadError(
                f"Cannot open {req.container}/{req.source_path}", cause=e
            ) from e

    def _source_metadata(self, req: ThumbRequest) -> Dict[str, str]:
        try:
            return self.store.get_metadata(req.container, req.source_path)
        except StorageError as e:
            raise MetadataReadError(
                f"Cannot read metadata of {req.container}/{req.source_path}", cause=e
            ) from e

    def _materialize(self, req: ThumbRequest, reader, strategy: ToolStrategy):
        if strategy.materialization == FILE:
            return self._file_source(req, reader)
        return self._pipe_source(req, reader)

    @contextmanager
    def _pipe_source(self, req: ThumbRequest, reader) -> Iterator[SourceInput]:
        """Read the whole source into memory for the tool's stdin."""
        try:
            data = reader.read()
        except (StorageError, OSError) as e:
            raise SourceReadError(
                f"Cannot read {req.container}/{req.source_path}", step='read_source', cause=e
            ) from e
        yield SourceInput(data=data)

    @contextmanager
    def _file_source(self, req: ThumbRequest, reader) -> Iterator[SourceInput]:
        """Copy the source to a temporary file, deleted on exit."""
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.config.tmp_dir, prefix='thumbsrc_', suffix='.' + req.source_ext
            )
        except OSError as e:
            raise SourceReadError("Cannot create temporary file", step='create_temp', cause=e) from e

        try:
            try:
                with os.fdopen(fd, 'wb') as f:
                    shutil.copyfileobj(reader, f, COPY_CHUNK_SIZE)
            except (StorageError, OSError) as e:
                raise SourceReadError(
                    f"Cannot copy {req.container}/{req.source_path} to {tmp_path}",
                    step='copy_source', cause=e
                ) from e
            yield SourceInput(path=tmp_path)
        finally:
            self._remove_tempfile(tmp_path)

    def _remove_tempfile(self, tmp_path: str) -> None:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError as e:
                self.logger.warning(f"Could not delete {tmp_path}: {e}")

    def _invoke(self, req: ThumbRequest, strategy: ToolStrategy, source: SourceInput) -> bytes:
        command = self.build_command(req, source)
        try:
            return self.runner(command[0], command[1:], stdin=source.data, logger=self.logger)
        except GenerationFailed:
            raise
        except OSError as e:
            raise GenerationFailed(f"Cannot run {command[0]}", cause=e) from e

    def _upload(self, req: ThumbRequest, thumbnail: bytes, metadata: Dict[str, str]) -> None:
        content_type, _ = guess_type(req.thumb_path)
        try:
            self.store.upload_object(
                req.container, req.thumb_path, thumbnail,
                metadata=metadata, content_type=content_type
            )
        except StorageError as e:
            raise UploadError(
                f"Cannot store {req.container}/{req.thumb_path}", thumbnail=thumbnail, cause=e
            ) from e
        self.logger.info(f"Stored {req.container}/{req.thumb_path} ({len(thumbnail)} bytes)")
