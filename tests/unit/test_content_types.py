"""Tests for content type inference from object paths."""

import pytest

from mediaproxy.core.storage.content_types import (
    DEFAULT_CONTENT_TYPE,
    detect_content_type,
    get_extension,
    resolve_content_type,
)


class TestDetectContentType:

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("a/b/photo.heim", "image/heic"),
            ("clip.mp4", "video/mp4"),
            ("CLIP.MOV", "video/quicktime"),
            ("shot.HEIF", "image/heif"),
            ("still.jpeg", "image/jpeg"),
        ],
    )
    def test_media_table(self, path, expected):
        assert detect_content_type(path) == expected

    def test_falls_back_to_system_registry(self):
        """Non-media extensions still get a type from the mimetypes registry."""
        assert detect_content_type("report.pdf") == "application/pdf"

    def test_unknown_extension_is_octet_stream(self):
        assert detect_content_type("blob.zzzunknown") == DEFAULT_CONTENT_TYPE

    def test_no_extension_is_octet_stream(self):
        assert detect_content_type("folder/README") == DEFAULT_CONTENT_TYPE

    def test_dot_in_directory_is_not_an_extension(self):
        """Only the last path segment is considered."""
        assert get_extension("dir.mp4/file") == ""
        assert detect_content_type("dir.mp4/file") == DEFAULT_CONTENT_TYPE


class TestResolveContentType:

    def test_explicit_type_kept(self):
        assert resolve_content_type("clip.mp4", "video/x-matroska") == "video/x-matroska"

    def test_empty_type_inferred(self):
        assert resolve_content_type("clip.mp4", "") == "video/mp4"
