"""
Chunk transport service.

Performs the three HTTP operations of the upload endpoint:
init_upload, upload_chunk and complete_upload.
"""
import asyncio
import json
import time
from typing import Optional, Dict, Any, List

import aiohttp

from ...config import TimeoutConfig, UploadConfig
from ...exceptions import TransportError, NetworkError
from ...logging import get_logger


class ChunkTransport:
    """
    HTTP client for the chunked upload endpoint.

    Reuses one HTTP session for all requests of an upload.

    Responsibilities:
    - Build the request of each operation
    - Map non-2xx responses to TransportError (with status)
    - Map missing responses (connection errors, timeouts) to NetworkError

    Example:
        >>> async with ChunkTransport("https://host/api/media") as transport:
        ...     upload_id = await transport.init_upload("a.bin", 10, md5, 1)
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[TimeoutConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        verify_ssl: bool = True
    ):
        """
        Initialize chunk transport.

        Args:
            endpoint: Base URL of the upload API
            headers: Extra headers merged into every request
            timeout: Request timeouts
            session: Optional shared session (closed by its owner, not here)
            verify_ssl: Verify TLS certificates when creating our own session
        """
        self._endpoint = endpoint.rstrip('/')
        self._headers = dict(headers or {})
        self._timeout = timeout or TimeoutConfig()
        self._session = session
        self._owns_session = False
        self._verify_ssl = verify_ssl
        self._logger = get_logger('upload.transport')

    @classmethod
    def from_config(
        cls,
        config: UploadConfig,
        session: Optional[aiohttp.ClientSession] = None
    ) -> 'ChunkTransport':
        """Create a transport for an upload configuration."""
        return cls(
            config.endpoint,
            headers=config.headers,
            timeout=config.timeout,
            session=session,
            verify_ssl=config.verify_ssl
        )

    @property
    def endpoint(self) -> str:
        """Returns the base URL."""
        return self._endpoint

    async def __aenter__(self) -> 'ChunkTransport':
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None:
            connector_kwargs = {'limit': 10, 'keepalive_timeout': 30}
            if not self._verify_ssl:
                connector_kwargs['ssl'] = False
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(**connector_kwargs)
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def init_upload(
        self,
        file_name: str,
        file_size: int,
        digest: str,
        chunk_count: int,
        extra_fields: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Open an upload on the endpoint.

        Args:
            file_name: Name of the file
            file_size: Size of the file in bytes
            digest: MD5 hex digest of the whole file
            chunk_count: Number of chunks that will be sent
            extra_fields: Caller fields merged into the request body

        Returns:
            Upload id assigned by the endpoint

        Raises:
            TransportError: On non-2xx status or malformed response
            NetworkError: If no response was received
        """
        body = {
            'file_name': file_name,
            'file_size': file_size,
            'md5': digest,
            'chunk_count': chunk_count,
            **(extra_fields or {}),
        }
        self._logger.debug(f"Initializing upload of {file_name} ({file_size} bytes, {chunk_count} chunks)")
        status, payload = await self._post_json('init_upload', body)
        return self._extract(payload, 'upload_id', status, 'init_upload')

    async def upload_chunk(self, upload_id: str, chunk_index: int, data: bytes) -> str:
        """
        Send a single chunk.

        Args:
            upload_id: Id returned by init_upload
            chunk_index: Zero-based chunk index
            data: Chunk bytes

        Returns:
            Ack token (etag) for the chunk

        Raises:
            TransportError: On non-2xx status or malformed response
            NetworkError: If no response was received
        """
        form = aiohttp.FormData()
        form.add_field(
            'chunk_data',
            data,
            filename='blob',
            content_type='application/octet-stream'
        )
        form.add_field('upload_id', str(upload_id))
        form.add_field('chunk_size', str(len(data)))
        form.add_field('chunk_number', str(chunk_index))

        chunk_size_kb = len(data) / 1024
        upload_start = time.time()
        self._logger.debug(f"Uploading chunk {chunk_index} ({chunk_size_kb:.1f} KB)")

        status, payload = await self._post(
            'upload_chunk',
            headers=dict(self._headers),
            data=form,
            chunk_index=chunk_index
        )
        etag = self._extract(payload, 'etag', status, 'upload_chunk', chunk_index)

        upload_time = time.time() - upload_start
        speed_kbps = (chunk_size_kb / upload_time) if upload_time > 0 else 0
        self._logger.debug(f"Chunk {chunk_index} uploaded in {upload_time:.2f}s ({speed_kbps:.1f} KB/s)")
        return etag

    async def complete_upload(self, upload_id: str, etags: List[str]) -> Dict[str, Any]:
        """
        Finalize the upload.

        Args:
            upload_id: Id returned by init_upload
            etags: Ack tokens in chunk order

        Returns:
            Endpoint response (includes the final storage location)
        """
        body = {'upload_id': upload_id, 'etags': list(etags)}
        self._logger.debug(f"Completing upload {upload_id} with {len(etags)} etags")
        status, payload = await self._post_json('complete_upload', body)
        if not isinstance(payload, dict):
            raise TransportError(
                f"complete_upload returned unexpected payload: {payload!r}",
                status=status
            )
        return payload

    async def _post_json(self, operation: str, body: Dict[str, Any]):
        headers = {**self._headers, 'Content-Type': 'application/json'}
        return await self._post(operation, headers=headers, data=json.dumps(body))

    async def _post(
        self,
        operation: str,
        headers: Dict[str, str],
        data: Any,
        chunk_index: Optional[int] = None
    ):
        """
        POST to an endpoint operation.

        Returns:
            Tuple of (status, decoded JSON payload)
        """
        url = f"{self._endpoint}/{operation}"
        session = await self._get_session()

        try:
            async with session.post(
                url,
                headers=headers,
                data=data,
                timeout=self._timeout.to_aiohttp_timeout()
            ) as response:
                if not 200 <= response.status < 300:
                    detail = await response.text()
                    self._logger.debug(f"{operation} -> HTTP {response.status}: {detail[:200]}")
                    raise TransportError(
                        f"{operation} failed with HTTP {response.status}",
                        status=response.status,
                        chunk_index=chunk_index
                    )
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise TransportError(
                        f"{operation} returned invalid JSON: {e}",
                        status=response.status,
                        chunk_index=chunk_index
                    ) from e
                return response.status, payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f"{operation} failed without response: {e!r}",
                chunk_index=chunk_index
            ) from e

    def _extract(
        self,
        payload: Any,
        key: str,
        status: int,
        operation: str,
        chunk_index: Optional[int] = None
    ) -> str:
        """Pull data.<key> out of a response payload."""
        try:
            value = payload['data'][key]
        except (KeyError, TypeError):
            value = None
        if value is None:
            raise TransportError(
                f"{operation} response is missing data.{key}",
                status=status,
                chunk_index=chunk_index
            )
        return value
