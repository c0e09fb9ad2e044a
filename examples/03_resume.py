"""
Persist a session and continue it after a restart
"""
import asyncio
import json
from pathlib import Path

from hugeupload import (
    UploadSession,
    UploadConfig,
    LocalFileHandle,
    SessionSnapshot,
    compute_digest,
)

STATE_FILE = Path("upload.state.json")


async def main():
    async with LocalFileHandle("dataset.zip") as handle:
        digest = await compute_digest(handle)
        config = UploadConfig("https://media.example.com/api/media", digest=digest)

        if STATE_FILE.exists():
            snapshot = SessionSnapshot.from_dict(json.loads(STATE_FILE.read_text()))
            session = UploadSession.from_snapshot(handle, config, snapshot)
            print(f"Resuming at chunk {session.current_chunk_index}/{session.total_chunks}")
        else:
            session = UploadSession(handle, config)

        def save(percent):
            STATE_FILE.write_text(json.dumps(session.snapshot().to_dict()))
            print(f"{percent}% (saved)")

        session.on('progress', save)
        session.start()
        result = await session.wait()

        STATE_FILE.unlink()
        print(result)


if __name__ == "__main__":
    asyncio.run(main())
