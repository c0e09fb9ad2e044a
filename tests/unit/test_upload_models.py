"""Tests for upload models."""
import pytest

from hugeupload.core.upload.models import (
    ChunkInfo,
    UploadState,
    RetryNotice,
    UploadProgress,
    SessionSnapshot,
)


class TestChunkInfo:
    """Test suite for ChunkInfo."""

    def test_size(self):
        """Test size is end minus start."""
        assert ChunkInfo(index=2, start=6, end=9).size == 3

    def test_frozen(self):
        """Test ChunkInfo is immutable."""
        chunk = ChunkInfo(0, 0, 10)
        with pytest.raises(AttributeError):
            chunk.start = 5


class TestUploadState:
    """Test suite for UploadState."""

    def test_terminal_states(self):
        """Test only finished and failed are terminal."""
        terminal = {state for state in UploadState if state.is_terminal}
        assert terminal == {UploadState.FINISHED, UploadState.FAILED}


class TestUploadProgress:
    """Test suite for UploadProgress."""

    def test_percentage_halves_round_up(self):
        """Test 1 of 8 chunks is 13 percent, not 12."""
        assert UploadProgress(total_chunks=8, uploaded_chunks=1).percentage == 13

    def test_percentage_thirds(self):
        """Test percentages of three chunks."""
        assert [UploadProgress(3, n).percentage for n in range(4)] == [0, 33, 67, 100]

    def test_zero_chunks(self):
        """Test no division by zero."""
        assert UploadProgress(total_chunks=0).percentage == 0

    def test_is_complete(self):
        """Test completion flag."""
        assert not UploadProgress(4, 3).is_complete
        assert UploadProgress(4, 4).is_complete


class TestRetryNotice:
    """Test suite for RetryNotice."""

    def test_fields(self):
        """Test payload fields."""
        notice = RetryNotice(chunk_index=2, retries_left=4, message="retrying")
        assert (notice.chunk_index, notice.retries_left, notice.message) == (2, 4, "retrying")


class TestSessionSnapshot:
    """Test suite for SessionSnapshot."""

    def test_to_dict(self):
        """Test serialized form uses etags."""
        snapshot = SessionSnapshot('up-1', 4, 2, ('e0', 'e1'))

        assert snapshot.to_dict() == {
            'upload_id': 'up-1',
            'total_chunks': 4,
            'current_chunk_index': 2,
            'etags': ['e0', 'e1'],
        }

    def test_from_dict(self):
        """Test parsing a persisted snapshot."""
        snapshot = SessionSnapshot.from_dict({
            'upload_id': 'up-1',
            'total_chunks': '4',
            'current_chunk_index': 1,
            'etags': ['e0'],
        })

        assert snapshot == SessionSnapshot('up-1', 4, 1, ('e0',))

    def test_consistency(self):
        """Test ack count must match the chunk position."""
        assert SessionSnapshot('up', 4, 2, ('a', 'b')).is_consistent
        assert not SessionSnapshot('up', 4, 2, ('a',)).is_consistent
        assert not SessionSnapshot('up', 1, 2, ('a', 'b')).is_consistent
