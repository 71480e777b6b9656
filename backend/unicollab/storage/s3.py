"""
S3 Document Store

Stores the raw uploaded PDF and hands back a publicly resolvable URL.

Key layout:
    s3://<BUCKET>/<user_id>/<epoch_millis>.<ext>

The key is always constructed server-side; the user id is sanitized and the
client filename only contributes its extension. The millisecond timestamp
keeps keys unique per upload for a given user.

Works against AWS S3 or any S3-compatible endpoint (Supabase Storage,
MinIO, LocalStack) through `endpoint_url`.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from unicollab.core.exceptions import StorageError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9._\-]")
_EXT_RE = re.compile(r"^[a-zA-Z0-9]{1,8}$")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StoredDocument:
    """Returned by DocumentStore.upload()."""
    key:          str
    bucket:       str
    url:          str
    size_bytes:   int
    content_type: str
    etag:         str = ""


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------

def file_extension(filename: str | None, default: str = "pdf") -> str:
    """Lowercased extension without the dot; `default` if absent or odd."""
    if not filename or "." not in filename:
        return default
    ext = filename.rsplit(".", 1)[-1].lower()
    return ext if _EXT_RE.match(ext) else default


def build_object_key(user_id: str, ext: str, timestamp_ms: int | None = None) -> str:
    """
    Pattern:  <user_id>/<timestamp>.<ext>

    Path separators and other unsafe characters in user_id are replaced so
    a caller can never address another user's prefix.
    """
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    safe_user = _UNSAFE_KEY_CHARS.sub("_", user_id).strip(".") or "anonymous"
    return f"{safe_user}/{ts}.{ext}"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class DocumentStore:
    """
    Async S3 uploads for study documents.

    All configuration is passed in; nothing is read from global settings, so
    tests can build one against a fake endpoint or replace it outright.
    """

    def __init__(
        self,
        bucket:          str,
        region:          str = "us-east-1",
        endpoint_url:    str | None = None,
        public_base_url: str | None = None,
        access_key_id:     str | None = None,
        secret_access_key: str | None = None,
    ) -> None:
        self._bucket          = bucket
        self._region          = region
        self._endpoint_url    = endpoint_url or None
        self._public_base_url = (public_base_url or "").rstrip("/") or None
        self._session = aioboto3.Session(
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    def _client(self):
        """Return a scoped async S3 client context manager."""
        return self._session.client(
            "s3",
            region_name=self._region,
            endpoint_url=self._endpoint_url,
        )

    def public_url(self, key: str) -> str:
        """
        Public object URL.
        With public_base_url (e.g. https://<ref>.supabase.co/storage/v1/object/public)
        the URL is <base>/<bucket>/<key>; otherwise the AWS virtual-hosted form.
        """
        if self._public_base_url:
            return f"{self._public_base_url}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    async def upload(
        self,
        user_id:      str,
        body:         bytes,
        filename:     str | None = None,
        content_type: str = PDF_CONTENT_TYPE,
    ) -> StoredDocument:
        """
        Upload raw document bytes under <user_id>/<timestamp>.<ext>.

        Raises:
            StorageError: the store rejected the upload or was unreachable.
        """
        key = build_object_key(user_id, file_extension(filename))

        try:
            async with self._client() as s3:
                resp = await s3.put_object(
                    Bucket=self._bucket,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 upload failed | bucket=%s key=%s error=%s", self._bucket, key, exc)
            raise StorageError("Failed to store the document.", detail=str(exc)) from exc

        logger.info("S3 upload ok | bucket=%s key=%s size=%d", self._bucket, key, len(body))

        return StoredDocument(
            key=key,
            bucket=self._bucket,
            url=self.public_url(key),
            size_bytes=len(body),
            content_type=content_type,
            etag=resp.get("ETag", "").strip('"'),
        )
