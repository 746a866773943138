"""
Profile photo generation.

Turns the webcam snapshot captured during the assessment into a headshot
for the candidate profile and stores it as the candidate's avatar.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from google import genai
from google.genai import types
from pydantic import BaseModel

from worksim_assessment.config import get_settings

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "screenshots"
AVATAR_PREFIX = "avatars"

HEADSHOT_PROMPT = (
    "Transform this webcam photo into a professional corporate headshot.\n"
    "Keep the person's face, features, and identity exactly the same.\n"
    "Replace the background with a neutral light gray studio backdrop.\n"
    "Apply soft, even studio lighting.\n"
    "Frame as head and shoulders, centered."
)


class ProfilePhotoResult(BaseModel):
    """Outcome of profile photo generation."""

    success: bool
    image_url: str | None = None
    error: str | None = None


def snapshot_key(assessment_id: str) -> str:
    """Storage key of the webcam snapshot taken during an assessment."""
    return f"{SNAPSHOT_PREFIX}/{assessment_id}/webcam-profile.jpg"


def avatar_key(user_id: str) -> str:
    """Storage key of a candidate's avatar."""
    return f"{AVATAR_PREFIX}/candidates/{user_id}.jpg"


class ProfilePhotoServiceBase(ABC):
    """Abstract base class for profile photo generation."""

    @abstractmethod
    async def generate_profile_photo(self, assessment_id: str, user_id: str) -> ProfilePhotoResult:
        """
        Generate and store a profile photo for a candidate.

        Args:
            assessment_id: Assessment whose webcam snapshot is used.
            user_id: Candidate the avatar belongs to.

        Returns:
            The outcome with the avatar URL on success.
        """
        ...

    async def close(self) -> None:
        """Release service resources."""
        return None


class ProfilePhotoService(ProfilePhotoServiceBase):
    """
    Profile photo service on S3 and Gemini image editing.

    Falls back to the raw snapshot when image editing fails or times out.
    """

    def __init__(
        self,
        bucket: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        url_ttl_seconds: int | None = None,
        edit_timeout: float | None = None,
    ) -> None:
        self._settings = get_settings()
        self._bucket = bucket or self._settings.s3_bucket
        self._api_key = api_key or self._settings.gemini_api_key
        self._model = model or self._settings.image_edit_model
        self._url_ttl = url_ttl_seconds or self._settings.avatar_url_ttl_seconds
        self._edit_timeout = edit_timeout or self._settings.llm_timeout
        self._s3: Any = None
        self._genai: genai.Client | None = None

    @property
    def s3(self) -> Any:
        """Lazy initialization of the S3 client."""
        if self._s3 is None:
            s3_kwargs: dict[str, Any] = {"region_name": self._settings.s3_region}
            if self._settings.s3_endpoint:
                s3_kwargs["endpoint_url"] = self._settings.s3_endpoint
            self._s3 = boto3.client(
                "s3",
                aws_access_key_id=self._settings.aws_access_key_id or None,
                aws_secret_access_key=self._settings.aws_secret_access_key or None,
                config=Config(signature_version="s3v4"),
                **s3_kwargs,
            )
        return self._s3

    def _get_genai(self) -> genai.Client:
        if self._genai is None:
            self._genai = genai.Client(api_key=self._api_key)
        return self._genai

    def _download(self, key: str) -> bytes:
        obj = self.s3.get_object(Bucket=self._bucket, Key=key)
        return obj["Body"].read()

    def _upload_and_sign(self, key: str, content: bytes) -> str:
        self.s3.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=content,
            ContentType="image/jpeg",
            CacheControl="max-age=31536000",
        )
        return self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=self._url_ttl,
        )

    async def _edit_to_headshot(self, snapshot: bytes) -> bytes:
        response = await asyncio.wait_for(
            self._get_genai().aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Content(
                        role="user",
                        parts=[
                            types.Part.from_text(text=HEADSHOT_PROMPT),
                            types.Part.from_bytes(data=snapshot, mime_type="image/jpeg"),
                        ],
                    )
                ],
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            ),
            timeout=self._edit_timeout,
        )
        candidates = response.candidates or []
        parts = candidates[0].content.parts if candidates and candidates[0].content else None
        if not parts:
            raise ValueError("No response parts from image editing")
        for part in parts:
            inline = part.inline_data
            if inline and inline.data and (inline.mime_type or "").startswith("image/"):
                return inline.data
        raise ValueError("No image data in image editing response")

    async def generate_profile_photo(self, assessment_id: str, user_id: str) -> ProfilePhotoResult:
        """Download the snapshot, edit it, upload the avatar and sign its URL."""
        if not self._bucket:
            return ProfilePhotoResult(success=False, error="Storage bucket not configured")

        loop = asyncio.get_running_loop()
        try:
            snapshot = await loop.run_in_executor(None, self._download, snapshot_key(assessment_id))
        except (ClientError, BotoCoreError) as e:
            logger.info(f"No webcam snapshot for assessment {assessment_id}: {e}")
            return ProfilePhotoResult(success=False, error="Webcam profile snapshot not found")

        try:
            image = await self._edit_to_headshot(snapshot)
        except asyncio.TimeoutError:
            logger.warning(
                f"Headshot editing timed out after {self._edit_timeout}s for assessment "
                f"{assessment_id}, using raw snapshot"
            )
            image = snapshot
        except Exception as e:
            logger.warning(f"Headshot editing failed for assessment {assessment_id}, using raw snapshot: {e}")
            image = snapshot

        try:
            url = await loop.run_in_executor(None, self._upload_and_sign, avatar_key(user_id), image)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Avatar upload failed for user {user_id}: {e}")
            return ProfilePhotoResult(success=False, error=f"Upload failed: {e}")

        return ProfilePhotoResult(success=True, image_url=url)

    async def close(self) -> None:
        """Close the image editing client."""
        if self._genai is not None:
            await self._genai.aio.aclose()
            self._genai = None
