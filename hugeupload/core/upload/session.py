"""
Upload session.

Drives one resumable, chunked upload: init, a strictly sequential chunk
loop with fixed-delay retries, and completion with the ordered etags.
Pausing (by the caller or by an offline notification) halts the loop
between chunks; resuming continues at the first unacknowledged chunk.
"""
import asyncio
from typing import Optional, Dict, Any, List, Callable, Tuple

from ..config import UploadConfig
from ..events import EventBus, UploadEvent
from ..exceptions import (
    ValidationError,
    InvalidSequenceError,
    FileReadError,
    TransportError,
    TransientTransportError,
    PermanentTransportError,
    RetriesExhaustedError,
)
from ..logging import get_logger
from ..network import NetworkStatus
from ..retry import RetryPolicy, FixedDelayRetryPolicy
from .models import ChunkInfo, UploadState, RetryNotice, UploadProgress, SessionSnapshot
from .protocols import FileHandle, ChunkTransportProtocol
from .services import FileValidator, ChunkTransport
from .strategies import FixedSizeChunkingStrategy

logger = get_logger('session')


class UploadSession:
    """
    Resumable upload of a single file.

    Exactly one chunk is in flight at any time and chunk i+1 is never sent
    before chunk i was acknowledged. All state lives on the instance, so a
    session can be paused, resumed, or persisted with snapshot() and
    rebuilt with from_snapshot().

    Events (see UploadEvent): progress, fileRetry, error, online, offline,
    finish.

    Example:
        >>> session = UploadSession(handle, UploadConfig(endpoint, digest=md5))
        >>> session.on('progress', lambda percent: print(f"{percent}%"))
        >>> session.start()
        >>> result = await session.wait()
    """

    def __init__(
        self,
        file: FileHandle,
        config: UploadConfig,
        transport: Optional[ChunkTransportProtocol] = None,
        retry_policy: Optional[RetryPolicy] = None,
        events: Optional[EventBus] = None
    ):
        """
        Initialize upload session.

        Args:
            file: Handle of the file to upload (read-only, not copied)
            config: Endpoint, digest, chunk size and retry settings
            transport: Transport to use (defaults to an aiohttp ChunkTransport)
            retry_policy: Retry policy (defaults to fixed delay from config)
            events: Event bus (a private one is created if omitted)

        Raises:
            ValidationError: If the file handle or config is not usable
        """
        if not isinstance(config, UploadConfig):
            raise ValidationError("config must be an UploadConfig")
        if not isinstance(file, FileHandle):
            raise ValidationError("file must be a FileHandle (name, size, read_range)")
        FileValidator().validate_size(file.size)

        self._file = file
        self._config = config
        self._transport = transport or ChunkTransport.from_config(config)
        self._owns_transport = transport is None
        self._retry_policy = retry_policy or FixedDelayRetryPolicy(
            max_retries=config.retries,
            delay=config.delay_before_retry
        )
        self._events = events or EventBus('session.events')
        self._chunks: List[ChunkInfo] = FixedSizeChunkingStrategy(
            config.chunk_size
        ).calculate_chunks(file.size)

        self._upload_id: Optional[str] = None
        self._current_chunk_index = 0
        self._acknowledgements: List[str] = []
        self._retry_count = 0
        self._state = UploadState.IDLE
        self._network_status = NetworkStatus.ONLINE
        self._paused = False

        self._task: Optional[asyncio.Task] = None
        self._done = asyncio.Event()
        self._result: Optional[Dict[str, Any]] = None
        self._error: Optional[Exception] = None

    @classmethod
    def from_snapshot(
        cls,
        file: FileHandle,
        config: UploadConfig,
        snapshot: SessionSnapshot,
        **kwargs
    ) -> 'UploadSession':
        """
        Rebuild a session that continues a previously initialized upload.

        The restored session skips init_upload and starts at the first
        chunk the snapshot has no etag for.

        Raises:
            InvalidSequenceError: If the snapshot does not fit the file
        """
        session = cls(file, config, **kwargs)
        if not snapshot.is_consistent:
            raise InvalidSequenceError(
                f"Snapshot has {len(snapshot.acknowledgements)} etags "
                f"for chunk position {snapshot.current_chunk_index}"
            )
        if snapshot.total_chunks != session.total_chunks:
            raise InvalidSequenceError(
                f"Snapshot expects {snapshot.total_chunks} chunks, "
                f"file has {session.total_chunks}"
            )
        session._upload_id = snapshot.upload_id
        session._current_chunk_index = snapshot.current_chunk_index
        session._acknowledgements = list(snapshot.acknowledgements)
        return session

    def __repr__(self) -> str:
        return (
            f"<UploadSession {self._file.name!r} {self._state.value} "
            f"{self._current_chunk_index}/{self.total_chunks}>"
        )

    # Properties

    @property
    def config(self) -> UploadConfig:
        return self._config

    @property
    def endpoint(self) -> str:
        return self._config.endpoint

    @property
    def chunk_size(self) -> int:
        return self._config.chunk_size

    @property
    def file_name(self) -> str:
        return self._config.file_name or self._file.name

    @property
    def file_size(self) -> int:
        return self._file.size

    @property
    def chunks(self) -> Tuple[ChunkInfo, ...]:
        """Returns the byte ranges of every chunk, in order."""
        return tuple(self._chunks)

    @property
    def total_chunks(self) -> int:
        return len(self._chunks)

    @property
    def upload_id(self) -> Optional[str]:
        return self._upload_id

    @property
    def current_chunk_index(self) -> int:
        return self._current_chunk_index

    @property
    def acknowledgements(self) -> Tuple[str, ...]:
        """Returns the etags received so far, in chunk order."""
        return tuple(self._acknowledgements)

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def network_status(self) -> NetworkStatus:
        return self._network_status

    @property
    def is_paused(self) -> bool:
        """Returns True if the caller paused the session."""
        return self._paused

    @property
    def progress(self) -> UploadProgress:
        return UploadProgress(self.total_chunks, self._current_chunk_index)

    @property
    def result(self) -> Optional[Dict[str, Any]]:
        """Returns the completion response once finished."""
        return self._result

    @property
    def error(self) -> Optional[Exception]:
        """Returns the terminal error once failed."""
        return self._error

    @property
    def _halted(self) -> bool:
        return self._paused or self._network_status is NetworkStatus.OFFLINE

    # Events

    def on(self, event: str, callback: Callable) -> 'UploadSession':
        """Register an event handler."""
        self._events.on(event, callback)
        return self

    def off(self, event: str, callback: Optional[Callable] = None) -> 'UploadSession':
        """Remove an event handler."""
        self._events.off(event, callback)
        return self

    # Public operations

    def start(self) -> asyncio.Task:
        """
        Start the upload.

        Must be called from a running event loop. Returns the driver task;
        use wait() for the outcome.

        Raises:
            InvalidSequenceError: If the session was already started
        """
        if self._state is not UploadState.IDLE:
            raise InvalidSequenceError(f"Cannot start a session that is {self._state.value}")

        logger.info(
            f"Starting upload of {self.file_name} "
            f"({self.file_size} bytes, {self.total_chunks} chunks of {self.chunk_size})"
        )
        if self._upload_id is None:
            self._set_state(UploadState.INITIALIZING)
        else:
            logger.info(f"Resuming upload {self._upload_id} at chunk {self._current_chunk_index}")
            self._set_state(UploadState.TRANSFERRING)
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def pause(self) -> None:
        """
        Halt the chunk loop before the next transfer.

        A request already in flight is allowed to finish.
        """
        if self._state.is_terminal or self._paused:
            return
        self._paused = True
        logger.info(f"Pausing upload of {self.file_name} at chunk {self._current_chunk_index}")

    def resume(self) -> None:
        """Continue a paused upload at the first unacknowledged chunk."""
        if self._state.is_terminal or not self._paused:
            return
        self._paused = False
        logger.info(f"Resuming upload of {self.file_name} at chunk {self._current_chunk_index}")
        self._schedule()

    def set_network_status(self, online: bool) -> None:
        """
        Report a connectivity change.

        Going offline halts the loop like pause(); coming back online
        resumes it unless the caller paused explicitly.
        """
        if self._state.is_terminal:
            return
        status = NetworkStatus.ONLINE if online else NetworkStatus.OFFLINE
        if status is self._network_status:
            return
        self._network_status = status
        logger.info(f"Upload of {self.file_name} is now {status.value}")

        if online:
            self._events.emit(UploadEvent.ONLINE)
            self._schedule()
        else:
            self._events.emit(UploadEvent.OFFLINE)

    async def wait(self) -> Dict[str, Any]:
        """
        Wait for the session to finish.

        Returns:
            Completion response

        Raises:
            HugeUploadError: The terminal error if the upload failed
        """
        await self._done.wait()
        if self._error is not None:
            raise self._error
        return self._result

    def snapshot(self) -> SessionSnapshot:
        """
        Capture the resumable position of the session.

        Raises:
            InvalidSequenceError: Before the upload was initialized
        """
        if self._upload_id is None:
            raise InvalidSequenceError("Nothing to snapshot before the upload is initialized")
        return SessionSnapshot(
            upload_id=self._upload_id,
            total_chunks=self.total_chunks,
            current_chunk_index=self._current_chunk_index,
            acknowledgements=tuple(self._acknowledgements)
        )

    async def close(self) -> None:
        """Release the transport if the session created it."""
        if self._owns_transport:
            await self._transport.close()

    # Driver

    def _schedule(self) -> None:
        """Start a driver task unless one is already running."""
        if self._state.is_terminal or self._state is UploadState.IDLE or self._halted:
            return
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            if self._upload_id is None:
                if not await self._initialize():
                    return
            await self._drive()
        except Exception as error:
            logger.exception(f"Unexpected failure while uploading {self.file_name}")
            self._fail(error)
        finally:
            if self._state.is_terminal:
                await self.close()

    async def _initialize(self) -> bool:
        self._set_state(UploadState.INITIALIZING)
        try:
            upload_id = await self._transport.init_upload(
                self.file_name,
                self.file_size,
                self._config.digest,
                self.total_chunks,
                dict(self._config.body)
            )
        except TransportError as error:
            self._fail(self._retry_policy.classify(error))
            return False

        self._upload_id = upload_id
        logger.info(f"Upload {upload_id} initialized for {self.file_name}")
        return True

    async def _drive(self) -> None:
        while not self._state.is_terminal:
            if self._halted:
                self._set_state(UploadState.PAUSED)
                logger.info(f"Upload halted at chunk {self._current_chunk_index}/{self.total_chunks}")
                return
            if self._current_chunk_index >= self.total_chunks:
                await self._complete()
                return
            await self._transfer(self._chunks[self._current_chunk_index])

    async def _transfer(self, chunk: ChunkInfo) -> None:
        self._set_state(UploadState.TRANSFERRING)
        try:
            data = await self._file.read_range(chunk.start, chunk.end)
        except FileReadError as error:
            self._fail(error)
            return

        try:
            etag = await self._transport.upload_chunk(self._upload_id, chunk.index, data)
        except TransportError as error:
            if self._halted:
                logger.info(f"Discarding failed result of chunk {chunk.index}: upload is halted")
                return
            await self._handle_failure(chunk, error)
            return

        self._acknowledge(chunk, etag)

    def _acknowledge(self, chunk: ChunkInfo, etag: str) -> None:
        if self._halted:
            logger.debug(f"Chunk {chunk.index} acknowledged while halted, keeping its etag")
        self._acknowledgements.append(etag)
        self._current_chunk_index += 1
        self._retry_count = 0
        logger.debug(f"Chunk {chunk.index + 1}/{self.total_chunks} acknowledged ({chunk.size} bytes)")
        self._events.emit(UploadEvent.PROGRESS, self.progress.percentage)

    async def _handle_failure(self, chunk: ChunkInfo, error: TransportError) -> None:
        classified = self._retry_policy.classify(error)
        if not isinstance(classified, TransientTransportError):
            self._fail(classified)
            return

        if not self._retry_policy.should_retry(classified, self._retry_count):
            exhausted = RetriesExhaustedError(
                f"An error occurred uploading chunk {chunk.index}. No more retries, stopping upload",
                status=classified.status,
                chunk_index=chunk.index,
                retries=self._retry_count
            )
            exhausted.__cause__ = classified
            self._fail(exhausted)
            return

        self._retry_count += 1
        retries_left = self._retry_policy.retries_left(self._retry_count)
        notice = RetryNotice(
            chunk_index=chunk.index,
            retries_left=retries_left,
            message=f"An error occurred uploading chunk {chunk.index}. {retries_left} retries left"
        )
        self._set_state(UploadState.RETRYING)
        logger.warning(f"{notice.message} ({classified.message})")
        self._events.emit(UploadEvent.FILE_RETRY, notice)
        await self._retry_policy.wait_async(self._retry_count)

    async def _complete(self) -> None:
        if len(self._acknowledgements) != self.total_chunks:
            raise InvalidSequenceError(
                f"Cannot complete with {len(self._acknowledgements)} of {self.total_chunks} etags"
            )

        self._set_state(UploadState.COMPLETING)
        try:
            response = await self._transport.complete_upload(
                self._upload_id,
                list(self._acknowledgements)
            )
        except TransportError as error:
            if not isinstance(error, PermanentTransportError):
                error = PermanentTransportError.from_error(error)
            self._fail(error)
            return

        self._result = response
        self._set_state(UploadState.FINISHED)
        logger.info(f"Upload {self._upload_id} of {self.file_name} finished")
        self._events.emit(UploadEvent.FINISH, response)
        self._done.set()

    def _fail(self, error: Exception) -> None:
        """Move to FAILED and emit the single error event."""
        if self._state.is_terminal:
            return
        self._error = error
        self._set_state(UploadState.FAILED)
        logger.error(f"Upload of {self.file_name} failed: {error}")
        self._events.emit(UploadEvent.ERROR, error)
        self._done.set()

    def _set_state(self, state: UploadState) -> None:
        if state is not self._state:
            logger.debug(f"{self.file_name}: {self._state.value} -> {state.value}")
            self._state = state
