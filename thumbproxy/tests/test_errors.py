"""Tests for the error taxonomy and response mapping."""

import pytest

from thumbproxy.errors import (
    BadRequestShape, GenerationFailed, MetadataReadError, NoHandlerForMediaType,
    ResponseClass, SourceNotFound, SourceReadError, ThumbError, UnsupportedSource,
    UnsupportedTarget, UploadError, response_class_for, status_for,
)


class TestResponseMapping:
    """Tests for response_class_for / status_for."""

    @pytest.mark.parametrize('error', [
        BadRequestShape('bad'),
        UnsupportedSource('bad'),
        UnsupportedTarget('bad'),
    ])
    def test_bad_request(self, error):
        assert response_class_for(error) is ResponseClass.BAD_REQUEST
        assert status_for(error) == 400

    def test_not_found(self):
        assert response_class_for(SourceNotFound('gone')) is ResponseClass.NOT_FOUND
        assert status_for(SourceNotFound('gone')) == 404

    @pytest.mark.parametrize('error', [
        SourceReadError('x'),
        MetadataReadError('x'),
        NoHandlerForMediaType('x'),
        GenerationFailed('x', stderr=b'boom'),
        UploadError('x', thumbnail=b'data'),
        ThumbError('x'),
    ])
    def test_internal(self, error):
        assert response_class_for(error) is ResponseClass.INTERNAL_ERROR
        assert status_for(error) == 500

    def test_subclass_inherits_mapping(self):
        class ArchivedSourceNotFound(SourceNotFound):
            pass

        assert status_for(ArchivedSourceNotFound('gone')) == 404


class TestThumbError:
    """Tests for error attributes."""

    def test_default_step(self):
        assert SourceNotFound('gone').step == 'open_read'
        assert MetadataReadError('x').step == 'get_metadata'
        assert GenerationFailed('x').step == 'invoke_tool'
        assert UploadError('x', thumbnail=b'').step == 'upload'

    def test_explicit_step(self):
        assert SourceReadError('x', step='copy_source').step == 'copy_source'

    def test_str_includes_step_and_cause(self):
        error = SourceReadError('cannot read', cause=OSError('disk'))

        assert str(error) == 'open_read: cannot read (disk)'

    def test_upload_error_carries_bytes(self):
        assert UploadError('x', thumbnail=b'thumb').thumbnail == b'thumb'

    def test_generation_failed_carries_stderr(self):
        assert GenerationFailed('x', stderr=b'oops').stderr == b'oops'
