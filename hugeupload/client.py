"""
High-level upload client.

Wraps digesting, session creation and the shared HTTP session behind a
single object.
"""
from pathlib import Path
from typing import Optional, Union, Dict, Any, Callable

import aiohttp

from .core.config import (
    UploadConfig,
    TimeoutConfig,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RETRIES,
    DEFAULT_DELAY_BEFORE_RETRY,
)
from .core.digest import compute_digest
from .core.events import UploadEvent
from .core.logging import get_logger
from .core.network import NetworkMonitor
from .core.upload import UploadSession, LocalFileHandle, ChunkTransport, FileHandle, RetryNotice

logger = get_logger('client')


class HugeUploadClient:
    """
    Client for a chunked upload endpoint.

    Owns one aiohttp session shared by every upload it runs. Sessions it
    creates are registered with its NetworkMonitor, so a single
    set_offline()/set_online() call pauses and resumes all of them.

    Example:
        >>> async with HugeUploadClient("https://host/api/media",
        ...                             headers={"Authorization": "Bearer ..."}) as client:
        ...     result = await client.upload("video.mp4", body={"channel_id": "42"})
        ...     print(result["file_path"])
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retries: int = DEFAULT_RETRIES,
        delay_before_retry: float = DEFAULT_DELAY_BEFORE_RETRY,
        timeout: Optional[TimeoutConfig] = None,
        verify_ssl: bool = True,
        monitor: Optional[NetworkMonitor] = None
    ):
        """
        Initialize upload client.

        Args:
            endpoint: Base URL of the upload API
            headers: Headers sent with every request
            chunk_size: Chunk size in bytes
            retries: Retries per chunk on transient failures
            delay_before_retry: Seconds between retries
            timeout: Request timeouts
            verify_ssl: Verify TLS certificates
            monitor: Network monitor shared with other clients
        """
        self._endpoint = endpoint
        self._headers = dict(headers or {})
        self._chunk_size = chunk_size
        self._retries = retries
        self._delay_before_retry = delay_before_retry
        self._timeout = timeout or TimeoutConfig()
        self._verify_ssl = verify_ssl
        self.monitor = monitor or NetworkMonitor()
        self._http: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> 'HugeUploadClient':
        await self._get_http()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            connector_kwargs = {'limit': 10, 'keepalive_timeout': 30}
            if not self._verify_ssl:
                connector_kwargs['ssl'] = False
            self._http = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(**connector_kwargs)
            )
        return self._http

    async def close(self):
        """Close the shared HTTP session."""
        if self._http and not self._http.closed:
            await self._http.close()
        self._http = None

    def make_config(
        self,
        digest: str,
        body: Optional[Dict[str, Any]] = None,
        file_name: Optional[str] = None
    ) -> UploadConfig:
        """Build the UploadConfig of one upload."""
        return UploadConfig(
            endpoint=self._endpoint,
            digest=digest,
            chunk_size=self._chunk_size,
            retries=self._retries,
            delay_before_retry=self._delay_before_retry,
            headers=dict(self._headers),
            body=dict(body or {}),
            file_name=file_name,
            timeout=self._timeout,
            verify_ssl=self._verify_ssl
        )

    async def create_session(
        self,
        file: FileHandle,
        digest: Optional[str] = None,
        body: Optional[Dict[str, Any]] = None,
        file_name: Optional[str] = None,
        digest_progress: Optional[Callable[[float], None]] = None
    ) -> UploadSession:
        """
        Create a session for a file handle without starting it.

        The digest is computed from the file when not given.
        """
        if digest is None:
            logger.info(f"Computing MD5 of {file.name}")
            digest = await compute_digest(file, progress_callback=digest_progress)

        config = self.make_config(digest, body=body, file_name=file_name)
        transport = ChunkTransport.from_config(config, session=await self._get_http())
        session = UploadSession(file, config, transport=transport)
        self.monitor.subscribe(session)
        return session

    async def upload(
        self,
        file_path: Union[str, Path],
        digest: Optional[str] = None,
        body: Optional[Dict[str, Any]] = None,
        file_name: Optional[str] = None,
        on_progress: Optional[Callable[[int], None]] = None,
        on_retry: Optional[Callable[[RetryNotice], None]] = None,
        digest_progress: Optional[Callable[[float], None]] = None
    ) -> Dict[str, Any]:
        """
        Upload a local file and wait for completion.

        Args:
            file_path: Path to file to upload
            digest: Precomputed MD5 (computed when omitted)
            body: Extra fields for the init request
            file_name: Name reported to the endpoint
            on_progress: Called with the integer percent after each chunk
            on_retry: Called with a RetryNotice before each retry
            digest_progress: Called with the digested fraction

        Returns:
            Completion response of the endpoint

        Raises:
            FileNotFoundError: If file doesn't exist
            HugeUploadError: If the upload fails
        """
        async with LocalFileHandle(file_path) as handle:
            session = await self.create_session(
                handle,
                digest=digest,
                body=body,
                file_name=file_name,
                digest_progress=digest_progress
            )
            if on_progress:
                session.on(UploadEvent.PROGRESS, on_progress)
            if on_retry:
                session.on(UploadEvent.FILE_RETRY, on_retry)

            try:
                session.start()
                return await session.wait()
            finally:
                self.monitor.unsubscribe(session)
