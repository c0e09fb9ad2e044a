"""Tests for upload services."""
import asyncio
import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import aiohttp
import pytest

from hugeupload.core.config import UploadConfig
from hugeupload.core.exceptions import (
    ValidationError,
    FileReadError,
    TransportError,
    NetworkError,
)
from hugeupload.core.upload import FileHandle
from hugeupload.core.upload.services import (
    FileValidator,
    LocalFileHandle,
    BytesFileHandle,
    ChunkTransport,
)

ENDPOINT = 'https://uploads.test/api/media'


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status=200, payload=None, body=None):
        self.status = status
        self._body = body if body is not None else json.dumps(payload)

    async def text(self):
        return self._body

    async def json(self, content_type='application/json'):
        return json.loads(self._body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeHTTPSession:
    """Records posts and answers them from a queue."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.close_called = False

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self):
        self.close_called = True


class TestFileValidator:
    """Test suite for FileValidator."""

    @pytest.fixture
    def validator(self):
        """Create validator instance."""
        return FileValidator()

    @pytest.fixture
    def temp_file(self):
        """Create temporary file for testing."""
        fd, path = tempfile.mkstemp()
        os.write(fd, b"test content")
        os.close(fd)
        yield Path(path)
        os.unlink(path)

    def test_validate_existing_file(self, validator, temp_file):
        """Test validating existing file."""
        path, size = validator.validate(temp_file)

        assert path == temp_file
        assert size == 12  # "test content"

    def test_validate_string_path(self, validator, temp_file):
        """Test validating string path."""
        path, _ = validator.validate(str(temp_file))

        assert path == temp_file

    def test_validate_nonexistent_file(self, validator):
        """Test validating non-existent file."""
        with pytest.raises(FileNotFoundError):
            validator.validate(Path("/nonexistent/file.txt"))

    def test_validate_directory(self, validator):
        """Test validating directory raises error."""
        with pytest.raises(ValidationError):
            validator.validate(Path(tempfile.gettempdir()))

    def test_validate_size_empty(self, validator):
        """Test empty file raises error."""
        with pytest.raises(ValidationError, match="empty"):
            validator.validate_size(0)


class TestLocalFileHandle:
    """Test suite for LocalFileHandle."""

    @pytest.fixture
    def temp_file(self):
        """Create temporary file with known content."""
        fd, path = tempfile.mkstemp(suffix='.bin')
        os.write(fd, b"0123456789ABCDEFGHIJ")  # 20 bytes
        os.close(fd)
        yield Path(path)
        os.unlink(path)

    def test_is_file_handle(self, temp_file):
        """Test the protocol is satisfied."""
        handle = LocalFileHandle(temp_file)

        assert isinstance(handle, FileHandle)
        assert handle.size == 20
        assert handle.name == temp_file.name

    def test_custom_name(self, temp_file):
        """Test name override."""
        assert LocalFileHandle(temp_file, name='clip.mp4').name == 'clip.mp4'

    def test_empty_file_rejected(self):
        """Test empty files cannot be opened for upload."""
        fd, path = tempfile.mkstemp()
        os.close(fd)
        try:
            with pytest.raises(ValidationError):
                LocalFileHandle(path)
        finally:
            os.unlink(path)

    @pytest.mark.asyncio
    async def test_read_ranges(self, temp_file):
        """Test reading ranges reuses one open file."""
        async with LocalFileHandle(temp_file) as handle:
            assert await handle.read_range(0, 10) == b"0123456789"
            assert await handle.read_range(5, 15) == b"56789ABCDE"
            assert await handle.read_range(18, 20) == b"IJ"

    @pytest.mark.asyncio
    async def test_short_read(self, temp_file):
        """Test reading past the end fails."""
        async with LocalFileHandle(temp_file) as handle:
            with pytest.raises(FileReadError, match="Short read"):
                await handle.read_range(15, 25)

    @pytest.mark.asyncio
    async def test_concurrent_reads(self, tmp_path):
        """Test concurrent readers of one handle each get their own slice."""
        content = os.urandom(64 * 1024)
        path = tmp_path / 'data.bin'
        path.write_bytes(content)
        ranges = [(start, start + 1024) for start in range(0, len(content), 1024)]

        async with LocalFileHandle(path) as handle:
            slices = await asyncio.gather(
                *(handle.read_range(start, end) for start, end in ranges)
            )

        assert slices == [content[start:end] for start, end in ranges]

    @pytest.mark.asyncio
    async def test_file_removed_after_validation(self, temp_file):
        """Test an OS error becomes FileReadError."""
        handle = LocalFileHandle(temp_file)
        os.unlink(temp_file)
        try:
            with pytest.raises(FileReadError):
                await handle.read_range(0, 5)
        finally:
            temp_file.touch()


class TestBytesFileHandle:
    """Test suite for BytesFileHandle."""

    @pytest.mark.asyncio
    async def test_read_range(self):
        """Test slicing."""
        handle = BytesFileHandle(b"abcdef", name='x.txt')

        assert isinstance(handle, FileHandle)
        assert await handle.read_range(2, 5) == b"cde"

    @pytest.mark.asyncio
    async def test_out_of_range(self):
        """Test ranges outside the buffer fail."""
        with pytest.raises(FileReadError):
            await BytesFileHandle(b"abc").read_range(1, 9)


class TestChunkTransport:
    """Test suite for ChunkTransport."""

    def make_transport(self, *responses, headers=None):
        http = FakeHTTPSession(*responses)
        transport = ChunkTransport(
            ENDPOINT + '/',
            headers=headers or {'Authorization': 'Bearer t0k3n'},
            session=http
        )
        return transport, http

    def test_init(self):
        """Test initialization."""
        transport = ChunkTransport(ENDPOINT + '/')

        assert transport.endpoint == ENDPOINT

    def test_from_config(self):
        """Test building from an UploadConfig."""
        config = UploadConfig(
            endpoint=ENDPOINT,
            digest='ab' * 16,
            headers={'Authorization': 'Bearer x'}
        )

        transport = ChunkTransport.from_config(config)

        assert transport.endpoint == ENDPOINT
        assert transport._headers == {'Authorization': 'Bearer x'}

    @pytest.mark.asyncio
    async def test_init_upload(self):
        """Test init request body, headers and response parsing."""
        transport, http = self.make_transport(
            FakeResponse(200, {'data': {'upload_id': 'up-9'}})
        )

        upload_id = await transport.init_upload(
            'movie.mp4', 10, 'ab' * 16, 4, {'channel_id': '42'}
        )

        assert upload_id == 'up-9'
        url, kwargs = http.requests[0]
        assert url == f'{ENDPOINT}/init_upload'
        assert kwargs['headers'] == {
            'Authorization': 'Bearer t0k3n',
            'Content-Type': 'application/json',
        }
        assert json.loads(kwargs['data']) == {
            'file_name': 'movie.mp4',
            'file_size': 10,
            'md5': 'ab' * 16,
            'chunk_count': 4,
            'channel_id': '42',
        }

    @pytest.mark.asyncio
    async def test_init_upload_http_error(self):
        """Test non-2xx raises TransportError with status."""
        transport, _ = self.make_transport(FakeResponse(500, body='oops'))

        with pytest.raises(TransportError) as exc_info:
            await transport.init_upload('a', 1, 'ab' * 16, 1)

        assert exc_info.value.status == 500
        assert not isinstance(exc_info.value, NetworkError)

    @pytest.mark.asyncio
    async def test_init_upload_malformed(self):
        """Test missing upload_id is a TransportError."""
        transport, _ = self.make_transport(FakeResponse(200, {'data': {}}))

        with pytest.raises(TransportError, match="upload_id") as exc_info:
            await transport.init_upload('a', 1, 'ab' * 16, 1)

        assert exc_info.value.status == 200

    @pytest.mark.asyncio
    async def test_upload_chunk(self):
        """Test multipart fields and etag parsing."""
        transport, http = self.make_transport(
            FakeResponse(201, {'data': {'etag': '"abc"'}})
        )

        with patch('aiohttp.FormData') as form_class:
            form = form_class.return_value
            etag = await transport.upload_chunk('up-9', 3, b"chunk-bytes")

        assert etag == '"abc"'
        url, kwargs = http.requests[0]
        assert url == f'{ENDPOINT}/upload_chunk'
        assert kwargs['data'] is form
        assert kwargs['headers'] == {'Authorization': 'Bearer t0k3n'}

        fields = {c.args[0]: c for c in form.add_field.call_args_list}
        assert fields['chunk_data'].args[1] == b"chunk-bytes"
        assert fields['chunk_data'].kwargs['content_type'] == 'application/octet-stream'
        assert fields['upload_id'].args[1] == 'up-9'
        assert fields['chunk_size'].args[1] == '11'
        assert fields['chunk_number'].args[1] == '3'

    @pytest.mark.asyncio
    async def test_upload_chunk_status_error(self):
        """Test non-2xx carries status and chunk index."""
        transport, _ = self.make_transport(FakeResponse(503, body='busy'))

        with pytest.raises(TransportError) as exc_info:
            await transport.upload_chunk('up-9', 2, b"x")

        assert exc_info.value.status == 503
        assert exc_info.value.chunk_index == 2

    @pytest.mark.asyncio
    async def test_upload_chunk_missing_etag(self):
        """Test a 2xx without etag is a TransportError."""
        transport, _ = self.make_transport(FakeResponse(200, {'data': None}))

        with pytest.raises(TransportError, match="etag"):
            await transport.upload_chunk('up-9', 0, b"x")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test undecodable bodies are TransportErrors."""
        transport, _ = self.make_transport(FakeResponse(200, body='<html>'))

        with pytest.raises(TransportError, match="invalid JSON"):
            await transport.upload_chunk('up-9', 0, b"x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [
        aiohttp.ClientConnectionError("refused"),
        asyncio.TimeoutError(),
    ])
    async def test_no_response_is_network_error(self, failure):
        """Test connection failures and timeouts have no status."""
        transport, _ = self.make_transport(failure)

        with pytest.raises(NetworkError) as exc_info:
            await transport.upload_chunk('up-9', 1, b"x")

        assert exc_info.value.status is None
        assert exc_info.value.chunk_index == 1

    @pytest.mark.asyncio
    async def test_complete_upload(self):
        """Test completion body keeps etag order."""
        response = {'file_path': '/media/movie.mp4', 'status': 'ok'}
        transport, http = self.make_transport(FakeResponse(200, response))

        result = await transport.complete_upload('up-9', ['e0', 'e1', 'e2'])

        assert result == response
        url, kwargs = http.requests[0]
        assert url == f'{ENDPOINT}/complete_upload'
        assert json.loads(kwargs['data']) == {'upload_id': 'up-9', 'etags': ['e0', 'e1', 'e2']}
        assert kwargs['headers']['Content-Type'] == 'application/json'

    @pytest.mark.asyncio
    async def test_complete_upload_non_object(self):
        """Test completion must answer a JSON object."""
        transport, _ = self.make_transport(FakeResponse(200, ['nope']))

        with pytest.raises(TransportError):
            await transport.complete_upload('up-9', ['e0'])

    @pytest.mark.asyncio
    async def test_borrowed_session_not_closed(self):
        """Test close leaves a shared session alone."""
        transport, http = self.make_transport()

        await transport.close()

        assert http.close_called is False

    @pytest.mark.asyncio
    async def test_owned_session_closed(self):
        """Test close releases a session the transport created."""
        transport = ChunkTransport(ENDPOINT)
        session = await transport._get_session()

        await transport.close()

        assert session.closed
