"""Pytest fixtures for hugeupload tests."""
import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from hugeupload.core.config import UploadConfig
from hugeupload.core.exceptions import TransportError
from hugeupload.core.upload import BytesFileHandle

EMPTY_MD5 = 'd41d8cd98f00b204e9800998ecf8427e'
ENDPOINT = 'https://uploads.test/api/media'


class ScriptedTransport:
    """
    In-memory transport with scripted chunk outcomes.

    chunk_script maps a chunk index to the outcomes of its successive
    attempts: an int is treated as that HTTP status, an exception is
    raised as is. Attempts past the script succeed with etag-<index>.
    before_result maps a chunk index to a callable run once while that
    chunk is in flight.
    """

    def __init__(
        self,
        upload_id: str = 'up-1',
        chunk_script: Optional[Dict[int, List[Any]]] = None,
        before_result: Optional[Dict[int, Callable[[], None]]] = None,
        init_error: Optional[Exception] = None,
        complete_error: Optional[Exception] = None,
        complete_response: Optional[Dict[str, Any]] = None
    ):
        self.upload_id = upload_id
        self.chunk_script = {k: list(v) for k, v in (chunk_script or {}).items()}
        self.before_result = dict(before_result or {})
        self.init_error = init_error
        self.complete_error = complete_error
        self.complete_response = complete_response or {'file_path': '/media/sample.bin'}
        self.calls: List[tuple] = []
        self.closed = False

    @property
    def chunk_calls(self) -> List[int]:
        return [call[1] for call in self.calls if call[0] == 'chunk']

    @property
    def chunk_sizes(self) -> List[int]:
        return [call[2] for call in self.calls if call[0] == 'chunk']

    def calls_of(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def init_upload(self, file_name, file_size, digest, chunk_count, extra_fields=None):
        self.calls.append(('init', file_name, file_size, digest, chunk_count, extra_fields))
        await asyncio.sleep(0)
        if self.init_error:
            raise self.init_error
        return self.upload_id

    async def upload_chunk(self, upload_id, chunk_index, data):
        self.calls.append(('chunk', chunk_index, len(data), upload_id))
        await asyncio.sleep(0)

        hook = self.before_result.pop(chunk_index, None)
        if hook:
            hook()

        outcomes = self.chunk_script.get(chunk_index)
        if outcomes:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            if not 200 <= outcome < 300:
                raise TransportError(
                    f"upload_chunk failed with HTTP {outcome}",
                    status=outcome,
                    chunk_index=chunk_index
                )
        return f'etag-{chunk_index}'

    async def complete_upload(self, upload_id, etags):
        self.calls.append(('complete', upload_id, list(etags)))
        await asyncio.sleep(0)
        if self.complete_error:
            raise self.complete_error
        return self.complete_response

    async def close(self):
        self.closed = True


class EventRecorder:
    """Collects every event of a session in emission order."""

    EVENTS = ('progress', 'fileRetry', 'error', 'online', 'offline', 'finish')

    def __init__(self, session):
        self.events: List[tuple] = []
        for name in self.EVENTS:
            session.on(name, self._recorder(name))

    def _recorder(self, name):
        def record(*args):
            self.events.append((name, args[0] if args else None))
        return record

    def of(self, name: str) -> List[Any]:
        return [payload for event, payload in self.events if event == name]

    @property
    def names(self) -> List[str]:
        return [event for event, _ in self.events]


@pytest.fixture
def make_config():
    """Factory for UploadConfig with test-friendly defaults."""
    def factory(**overrides):
        values = {
            'endpoint': ENDPOINT,
            'digest': EMPTY_MD5,
            'chunk_size': 3,
            'retries': 5,
            'delay_before_retry': 0,
        }
        values.update(overrides)
        return UploadConfig(**values)
    return factory


@pytest.fixture
def sample_file():
    """Ten byte in-memory file."""
    return BytesFileHandle(bytes(range(10)), name='sample.bin')


@pytest.fixture
def transport():
    """Transport where every request succeeds."""
    return ScriptedTransport()
