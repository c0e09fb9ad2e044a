"""
Upload a file in one call
"""
import asyncio
from hugeupload import HugeUploadClient


async def main():
    async with HugeUploadClient(
        "https://media.example.com/api/media",
        headers={"Authorization": "Bearer <token>"}
    ) as client:

        # MD5 is computed before the upload starts
        result = await client.upload("video.mp4")
        print(f"Stored at: {result.get('file_path')}")

        # Extra init fields and progress
        result = await client.upload(
            "lecture.mp4",
            body={"channel_id": "42"},
            on_progress=lambda percent: print(f"Progress: {percent}%")
        )
        print(result)


if __name__ == "__main__":
    asyncio.run(main())
