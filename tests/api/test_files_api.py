"""
HTTP tests for the file storage endpoints.

The app runs in mock mode, so these go through routing, request
mapping, the batch storage and the in-memory store end to end.
"""

import base64

import pytest

from conftest import FlakyObjectStore
from mediaproxy.api.dependencies import get_storage
from mediaproxy.core.storage.batch import BatchStorage

FILES = "/api/v1/storage/files"


# ---------------------------------------------------------------------------
# Raw uploads
# ---------------------------------------------------------------------------

class TestPutRawFile:

    def test_put_writes_object_at_url_path(self, client, object_store):
        response = client.put(f"{FILES}/a/b/clip.mp4", content=b"video-bytes")

        assert response.status_code == 200
        assert response.json() == {
            "name": "a/b/clip.mp4",
            "content_type": "video/mp4",
            "size": len(b"video-bytes"),
        }
        assert "a/b/clip.mp4" in object_store

    def test_put_uses_content_type_header(self, client):
        response = client.put(
            f"{FILES}/photo.bin",
            content=b"img",
            headers={"Content-Type": "image/png"},
        )

        assert response.json()["content_type"] == "image/png"

    def test_put_infers_heic_from_heim_extension(self, client):
        response = client.put(f"{FILES}/a/b/photo.heim", content=b"img")

        assert response.json()["content_type"] == "image/heic"

    @pytest.mark.parametrize("reserved", ["read", "raw"])
    def test_put_reserved_path_rejected(self, client, object_store, reserved):
        """'read' and 'raw' are routes, never object names."""
        response = client.put(f"{FILES}/{reserved}", content=b"data")

        assert response.status_code == 400
        assert response.text == "Invalid file path"
        assert reserved not in object_store

    def test_put_twice_overwrites(self, client):
        first = client.put(f"{FILES}/same.png", content=b"v1")
        second = client.put(f"{FILES}/same.png", content=b"v2")

        assert first.json() == second.json()
        assert client.get(f"{FILES}/same.png").content == b"v2"

    def test_put_over_size_limit_rejected(self, client, object_store):
        too_big = b"x" * (1024 * 1024 + 1)

        response = client.put(f"{FILES}/big.mp4", content=too_big)

        assert response.status_code == 413
        assert "big.mp4" not in object_store

    def test_streamed_body_over_limit_rejected(self, client, object_store):
        """Bodies without Content-Length are counted as they arrive."""
        def chunks():
            for _ in range(5):
                yield b"x" * (256 * 1024)

        response = client.put(f"{FILES}/streamed.mp4", content=chunks())

        assert response.status_code == 413
        assert "streamed.mp4" not in object_store


class TestPostRawFile:

    def test_path_from_header(self, client, object_store):
        response = client.post(
            f"{FILES}/raw",
            content=b"abc",
            headers={"X-File-Path": "uploads/h.jpg"},
        )

        assert response.status_code == 200
        assert response.json()["name"] == "uploads/h.jpg"
        assert response.json()["content_type"] == "image/jpeg"

    def test_path_from_query(self, client):
        response = client.post(f"{FILES}/raw", params={"path": "q.webm"}, content=b"abc")

        assert response.status_code == 200
        assert response.json()["name"] == "q.webm"

    def test_header_beats_query(self, client, object_store):
        response = client.post(
            f"{FILES}/raw",
            params={"path": "from-query.mp4"},
            headers={"X-File-Path": "from-header.mp4"},
            content=b"abc",
        )

        assert response.json()["name"] == "from-header.mp4"
        assert "from-query.mp4" not in object_store

    def test_missing_path_rejected(self, client):
        response = client.post(f"{FILES}/raw", content=b"abc")

        assert response.status_code == 400
        assert "X-File-Path" in response.text

    def test_non_multipart_post_to_files_is_raw_upload(self, client):
        response = client.post(
            FILES,
            params={"path": "plain.mov"},
            content=b"abc",
            headers={"Content-Type": "application/octet-stream"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "name": "plain.mov",
            "content_type": "application/octet-stream",
            "size": 3,
        }


# ---------------------------------------------------------------------------
# Multipart uploads
# ---------------------------------------------------------------------------

class TestMultipartUpload:

    def test_each_file_part_becomes_an_object(self, client, object_store):
        response = client.post(
            FILES,
            files=[
                ("media/a.mp4", ("a.mp4", b"aaaa", "video/mp4")),
                ("media/b.png", ("b.png", b"bb", "image/png")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["errors"] == []
        assert {f["name"] for f in body["files_written"]} == {"media/a.mp4", "media/b.png"}
        assert "media/a.mp4" in object_store
        assert "media/b.png" in object_store

    def test_no_file_parts_rejected(self, client):
        body = (
            b"--xyz\r\n"
            b"Content-Disposition: form-data; name=\"note\"\r\n\r\n"
            b"no files here\r\n"
            b"--xyz--\r\n"
        )

        response = client.post(
            FILES,
            content=body,
            headers={"Content-Type": "multipart/form-data; boundary=xyz"},
        )

        assert response.status_code == 400
        assert response.text == "No files provided"

    def test_streamed_multipart_over_limit_rejected(self, client, object_store):
        """A chunked form with no Content-Length is still bounded."""
        def chunks():
            yield (
                b"--xyz\r\n"
                b"Content-Disposition: form-data; name=\"big.mp4\"; filename=\"big.mp4\"\r\n"
                b"Content-Type: video/mp4\r\n\r\n"
            )
            for _ in range(12):
                yield b"x" * (256 * 1024)
            yield b"\r\n--xyz--\r\n"

        response = client.post(
            FILES,
            content=chunks(),
            headers={"Content-Type": "multipart/form-data; boundary=xyz"},
        )

        assert response.status_code == 413
        assert "big.mp4" not in object_store

    def test_streamed_multipart_under_limit_accepted(self, client, object_store):
        def chunks():
            yield (
                b"--xyz\r\n"
                b"Content-Disposition: form-data; name=\"small.mp4\"; filename=\"small.mp4\"\r\n"
                b"Content-Type: video/mp4\r\n\r\n"
            )
            yield b"x" * 1024
            yield b"\r\n--xyz--\r\n"

        response = client.post(
            FILES,
            content=chunks(),
            headers={"Content-Type": "multipart/form-data; boundary=xyz"},
        )

        assert response.status_code == 200
        assert response.json()["files_written"][0]["size"] == 1024
        assert "small.mp4" in object_store

    def test_partial_failure_reported_per_file(self, app, client):
        """One failing item shows up in errors while the others are written."""
        storage = BatchStorage(FlakyObjectStore(fail_commit={"bad.mp4"}))
        app.dependency_overrides[get_storage] = lambda: storage
        try:
            response = client.post(
                FILES,
                files=[
                    ("good.mp4", ("good.mp4", b"1", "video/mp4")),
                    ("bad.mp4", ("bad.mp4", b"2", "video/mp4")),
                ],
            )
        finally:
            app.dependency_overrides.clear()

        body = response.json()
        assert response.status_code == 200
        assert [f["name"] for f in body["files_written"]] == ["good.mp4"]
        assert body["errors"] == [{"file_path": "bad.mp4", "error": "commit rejected"}]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReadFiles:

    def test_batch_read_returns_base64_content(self, client):
        client.put(f"{FILES}/r/one.png", content=b"\x89PNG")

        response = client.post(f"{FILES}/read", json={"file_paths": ["r/one.png", "r/missing.png"]})

        assert response.status_code == 200
        body = response.json()
        assert body["files"] == [{
            "metadata": {"name": "r/one.png", "content_type": "image/png", "size": 4},
            "content": base64.b64encode(b"\x89PNG").decode("ascii"),
        }]
        assert [e["file_path"] for e in body["errors"]] == ["r/missing.png"]

    def test_empty_path_list_rejected_before_storage(self, app, client):
        class ExplodingStorage:
            async def read_many(self, paths):
                raise AssertionError("storage must not be called")

        app.dependency_overrides[get_storage] = lambda: ExplodingStorage()
        try:
            response = client.post(f"{FILES}/read", json={"file_paths": []})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 400
        assert response.text == "No file paths provided"

    def test_malformed_json_rejected(self, client):
        response = client.post(
            f"{FILES}/read",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400


class TestGetFile:

    def test_download_returns_bytes_and_headers(self, client):
        client.put(f"{FILES}/dl/clip.mp4", content=b"0123456789")

        response = client.get(f"{FILES}/dl/clip.mp4")

        assert response.status_code == 200
        assert response.content == b"0123456789"
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["content-length"] == "10"
        assert response.headers["content-disposition"] == 'attachment; filename="dl/clip.mp4"'

    def test_missing_file_is_500(self, client):
        """Not-found is a read failure like any other; there is no distinct 404."""
        response = client.get(f"{FILES}/does/not/exist.mp4")

        assert response.status_code == 500
        assert response.text.startswith("Failed to read file:")

    def test_text_content_type_returned_as_stored(self, client):
        client.put(
            f"{FILES}/notes.txt",
            content=b"hello",
            headers={"Content-Type": "text/plain"},
        )

        response = client.get(f"{FILES}/notes.txt")

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/plain"

    @pytest.mark.parametrize("reserved", ["read", "raw"])
    def test_get_reserved_name_is_a_failed_read(self, client, reserved):
        """Nothing can be stored under 'read' or 'raw', so reading them fails."""
        response = client.get(f"{FILES}/{reserved}")

        assert response.status_code == 500
        assert response.text.startswith("Failed to read file:")
