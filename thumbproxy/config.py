"""
Configuration for the thumbnail proxy, read from environment variables.
"""

import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from .tools import DEFAULT_FILE_FORMATS, DEFAULT_JPEG_QUALITY, FFMPEG, VIPS


def str2bool(value: Optional[str], default: bool = False) -> bool:
    """Converts diverse string values into True or False."""
    if value is None:
        return default
    value = value.strip().lower()
    if value in {'yes', 'true', 't', 'y', '1', 'on'}:
        return True
    if value in {'no', 'false', 'f', 'n', '0', 'off'}:
        return False
    return default


def split_formats(value: str) -> FrozenSet[str]:
    return frozenset(ext.strip().lower().lstrip('.') for ext in value.split(',') if ext.strip())


def env_int(name: str, default: int, errors: Dict[str, str]) -> int:
    """Integer from the environment; a non-numeric value is recorded in errors and the default kept."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        errors[name] = f"{name} must be an integer: {value!r}"
        return default


@dataclass
class S3Config:
    """
    S3 connection settings.

    Attributes:
        endpoint: S3-compatible endpoint URL (None for AWS)
        region: Region name
        access_key: Access key id (None to use the default credential chain)
        secret_key: Secret access key
        verify_ssl: Verify TLS certificates
    """
    endpoint: Optional[str] = None
    region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> 'S3Config':
        return cls(
            endpoint=os.getenv('S3_ENDPOINT') or None,
            region=os.getenv('S3_REGION') or None,
            access_key=os.getenv('S3_ACCESS_KEY') or None,
            secret_key=os.getenv('S3_SECRET_KEY') or None,
            verify_ssl=str2bool(os.getenv('S3_VERIFY_SSL'), default=True),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors = []
        if bool(self.access_key) != bool(self.secret_key):
            errors.append("S3_ACCESS_KEY and S3_SECRET_KEY must be set together")
        if self.endpoint and not self.endpoint.startswith(('http://', 'https://')):
            errors.append(f"S3_ENDPOINT must be an http(s) URL: {self.endpoint}")
        return errors


@dataclass
class LocalConfig:
    """Filesystem blob store settings; containers are directories under root_path."""
    root_path: str

    def validate(self) -> List[str]:
        errors = []
        if not self.root_path:
            errors.append("Local root path is not set")
        elif not os.path.isdir(self.root_path):
            errors.append(f"Local root path is not a directory: {self.root_path}")
        return errors


@dataclass
class ProxyConfig:
    """
    Settings for the HTTP server and thumbnail generation.

    Attributes:
        host: Interface to listen on
        port: Port to listen on
        server: Bottle server adapter name
        log_level: Logging level name
        tmp_dir: Directory for temporary source files
        vips_command: Rasterizer executable
        ffmpeg_command: Frame extractor executable
        jpeg_quality: Quality for JPEG thumbnails
        file_formats: Source extensions passed to the tool as a file
        video_enabled: Thumbnail video sources (False: image-only with SVG)
        local_root: Serve from a local directory instead of S3
        env_errors: Unparseable environment values, by variable name
    """
    host: str = '0.0.0.0'
    port: int = 8080
    server: str = 'wsgiref'
    log_level: str = 'INFO'
    tmp_dir: str = field(default_factory=tempfile.gettempdir)
    vips_command: str = VIPS
    ffmpeg_command: str = FFMPEG
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    file_formats: FrozenSet[str] = DEFAULT_FILE_FORMATS
    video_enabled: bool = True
    local_root: Optional[str] = None
    env_errors: Dict[str, str] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_env(cls) -> 'ProxyConfig':
        defaults = cls()
        env_errors = {}
        return cls(
            host=os.getenv('HOST', defaults.host),
            port=env_int('PORT', defaults.port, env_errors),
            server=os.getenv('BOTTLE_SERVER', defaults.server),
            log_level=os.getenv('LOG_LEVEL', defaults.log_level).upper(),
            tmp_dir=os.getenv('THUMB_TMP_DIR') or defaults.tmp_dir,
            vips_command=os.getenv('VIPS_COMMAND', defaults.vips_command),
            ffmpeg_command=os.getenv('FFMPEG_COMMAND', defaults.ffmpeg_command),
            jpeg_quality=env_int('THUMB_JPEG_QUALITY', defaults.jpeg_quality, env_errors),
            file_formats=split_formats(os.getenv('THUMB_FILE_FORMATS', ','.join(sorted(defaults.file_formats)))),
            video_enabled=str2bool(os.getenv('THUMB_VIDEO_ENABLED'), default=True),
            local_root=os.getenv('THUMB_LOCAL_ROOT') or None,
            env_errors=env_errors,
        )

    def validate(self) -> List[str]:
        errors = list(self.env_errors.values())
        if not 0 < self.port < 65536:
            errors.append(f"Port out of range: {self.port}")
        if not 1 <= self.jpeg_quality <= 100:
            errors.append(f"JPEG quality must be between 1 and 100: {self.jpeg_quality}")
        if not os.path.isdir(self.tmp_dir):
            errors.append(f"Temporary directory does not exist: {self.tmp_dir}")
        return errors
