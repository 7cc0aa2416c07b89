"""
Tools - External thumbnailing tools and how each source format is fed to them.

Each supported source extension maps to a ToolStrategy naming the tool,
the function that builds its argument vector and the way source bytes
reach it (piped to stdin, or copied to a temporary file).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from sh import Command, CommandNotFound, ErrorReturnCode

from .errors import GenerationFailed
from .media import IMAGE_EXTENSIONS, VECTOR_EXTENSIONS, VIDEO_EXTENSIONS


VIPS = 'vipsthumbnail'
FFMPEG = 'ffmpeg'

PIPE = 'pipe'
FILE = 'file'

DEFAULT_JPEG_QUALITY = 96
DEFAULT_FILE_FORMATS = frozenset({'mp4'})

# Sources that may hold several frames; vips loads all of them.
ANIMATED_EXTENSIONS = frozenset({'gif', 'webp'})

# ffmpeg does not know these aliases as input formats.
FFMPEG_FORMAT_ALIASES = {'ogv': 'ogg'}


@dataclass(frozen=True)
class SourceInput:
    """
    How the tool receives the source.

    Attributes:
        path: Temporary file path, or None when the bytes are piped
        data: Source bytes for stdin, or None when a file is used
    """
    path: Optional[str] = None
    data: Optional[bytes] = None

    @property
    def piped(self) -> bool:
        return self.path is None


def vips_args(req, source: SourceInput, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> List[str]:
    """Argument vector for vipsthumbnail."""
    in_opts = '[n=-1]' if req.source_ext in ANIMATED_EXTENSIONS else ''

    options = ['strip']
    if req.target_ext in ('jpg', 'jpeg'):
        options.append(f"Q={jpeg_quality}")
    elif req.target_ext == 'webp':
        options.append('lossless')

    input_name = 'stdin' if source.piped else source.path
    return [
        f"--output=.{req.target_ext}[{','.join(options)}]",
        f"--size={req.width}x",
        '--vips-concurrency=1',
        input_name + in_opts,
    ]


def ffmpeg_args(req, source: SourceInput, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> List[str]:
    """
    Argument vector for ffmpeg single-frame extraction.

    Parameters follow Wikimedia's thumbor video loader.
    """
    fmt = FFMPEG_FORMAT_ALIASES.get(req.source_ext, req.source_ext)
    return [
        '-f', fmt,
        '-i', 'pipe:' if source.piped else source.path,
        '-vframes', '1',
        '-an',
        '-f', 'image2pipe',
        '-vf', f"scale={req.width}:-1",
        '-qscale:v', '1', '-qmin', '1', '-qmax', '1',
        '-nostats',
        '-loglevel', 'fatal',
        'pipe:1',
    ]


ArgBuilder = Callable[..., List[str]]


@dataclass(frozen=True)
class ToolStrategy:
    tool: str
    build_args: ArgBuilder
    materialization: str = PIPE


def build_strategy_table(
    file_formats: Iterable[str] = DEFAULT_FILE_FORMATS,
    include_video: bool = True,
    include_vector: bool = False
) -> Dict[str, ToolStrategy]:
    """
    Build the extension -> strategy table.

    Args:
        file_formats: Source extensions that must be read from a file
        include_video: Register strategies for video extensions
        include_vector: Register the SVG rasterizing strategy
    """
    file_formats = frozenset(file_formats)

    def materialization(ext: str) -> str:
        return FILE if ext in file_formats else PIPE

    image_exts = set(IMAGE_EXTENSIONS)
    if include_vector:
        image_exts |= VECTOR_EXTENSIONS

    table = {ext: ToolStrategy(VIPS, vips_args, materialization(ext)) for ext in image_exts}
    if include_video:
        for ext in VIDEO_EXTENSIONS:
            table[ext] = ToolStrategy(FFMPEG, ffmpeg_args, materialization(ext))
    return table


def run_tool(
    command: str,
    args: List[str],
    stdin: Optional[bytes] = None,
    logger: Optional[logging.Logger] = None
) -> bytes:
    """
    Run an external tool and return its stdout.

    Raises:
        GenerationFailed: the tool is missing or exited non-zero
    """
    logger = logger or logging.getLogger(__name__)
    logger.info(f"Running: {[command] + list(args)}")

    try:
        tool = Command(command)
    except CommandNotFound as e:
        raise GenerationFailed(f"Tool not found: {command}", cause=e) from e

    kwargs = {'_return_cmd': True}
    if stdin is not None:
        kwargs['_in'] = stdin

    try:
        result = tool(*args, **kwargs)
    except ErrorReturnCode as e:
        stderr = e.stderr or b''
        logger.warning(f"{command} exited with {e.exit_code}: {stderr.decode('utf-8', 'replace').strip()}")
        raise GenerationFailed(f"{command} exited with status {e.exit_code}", cause=e, stderr=stderr) from e

    return result.stdout
