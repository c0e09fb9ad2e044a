"""
Drive a session by hand - events, pause and network changes
"""
import asyncio
from hugeupload import (
    UploadSession,
    UploadConfig,
    LocalFileHandle,
    NetworkMonitor,
    compute_digest,
)


async def main():
    async with LocalFileHandle("backup.tar") as handle:
        digest = await compute_digest(handle)
        config = UploadConfig(
            "https://media.example.com/api/media",
            digest=digest,
            chunk_size=8 * 1024 * 1024,
            retries=3,
            delay_before_retry=2
        )
        session = UploadSession(handle, config)

        session.on('progress', lambda percent: print(f"{percent}%"))
        session.on('fileRetry', lambda notice: print(notice.message))
        session.on('offline', lambda: print("Offline, waiting"))
        session.on('online', lambda: print("Back online"))
        session.on('error', lambda error: print(f"Failed: {error}"))
        session.on('finish', lambda response: print(f"Done: {response}"))

        monitor = NetworkMonitor()
        monitor.subscribe(session)
        session.start()

        # Pause between chunks, then continue where it stopped
        await asyncio.sleep(5)
        session.pause()
        await asyncio.sleep(2)
        session.resume()

        # Connectivity reported by the application
        monitor.set_offline()
        await asyncio.sleep(2)
        monitor.set_online()

        await session.wait()


if __name__ == "__main__":
    asyncio.run(main())
