"""
S3Client - S3 blob store operations for reading sources and storing thumbnails.
"""

import io
import logging
from typing import Dict, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import S3Config
from .errors import ObjectNotFound, StorageError


NOT_FOUND_CODES = {'404', 'NoSuchKey', 'NotFound'}


def is_not_found(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') in NOT_FOUND_CODES


class ObjectReader:
    """File-like wrapper over a streaming body that raises StorageError on failure."""

    def __init__(self, body, key: str):
        self._body = body
        self.key = key

    def read(self, size: int = -1) -> bytes:
        try:
            if size is None or size < 0:
                return self._body.read()
            return self._body.read(size)
        except (BotoCoreError, ClientError, OSError) as e:
            raise StorageError(f"Error reading {self.key}: {e}") from e

    def close(self) -> None:
        self._body.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class S3Client:
    """
    Wrapper for S3 operations used by the thumbnail orchestrator.

    Containers map to buckets; keys are used as given.
    """

    def __init__(self, config: S3Config, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: S3 configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def open_read(self, container: str, key: str) -> ObjectReader:
        """
        Open a streamed read of an object.

        Raises:
            ObjectNotFound: the object does not exist
            StorageError: any other S3 failure
        """
        self.logger.debug(f"Reading s3://{container}/{key}")
        try:
            response = self._client.get_object(Bucket=container, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise ObjectNotFound(f"No such object: {container}/{key}") from e
            raise StorageError(f"Error opening {container}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Error opening {container}/{key}: {e}") from e
        return ObjectReader(response['Body'], key)

    def get_metadata(self, container: str, key: str) -> Dict[str, str]:
        """Return the user metadata stored with an object."""
        try:
            response = self._client.head_object(Bucket=container, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise ObjectNotFound(f"No such object: {container}/{key}") from e
            raise StorageError(f"Error reading attributes of {container}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Error reading attributes of {container}/{key}: {e}") from e
        return dict(response.get('Metadata', {}))

    def upload_object(
        self,
        container: str,
        key: str,
        data: bytes,
        metadata: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None
    ) -> None:
        """Stream data to an object, attaching the given user metadata."""
        extra_args = {'Metadata': dict(metadata or {})}
        if content_type:
            extra_args['ContentType'] = content_type

        self.logger.debug(f"Uploading s3://{container}/{key} ({len(data)} bytes)")
        try:
            self._client.upload_fileobj(io.BytesIO(data), container, key, ExtraArgs=extra_args)
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise StorageError(f"Error uploading {container}/{key}: {e}") from e
