from __future__ import annotations

import gzip
import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from botocore.exceptions import ClientError

from src.adapters.aws import s3_client
from src.app.ports.output import ISnapshotCache
from src.domain.exceptions import FeedParseError
from src.domain.models import FeedSnapshot

from .snapshot_codec import snapshot_from_document, snapshot_to_document

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(slots=True)
class S3SnapshotCache(ISnapshotCache):
    """Keeps the parsed snapshot as gzipped JSON in S3.

    Shared by several API processes; the worker refreshes it.

    Env vars:
      - SNAPSHOT_CACHE_BUCKET (required)
      - SNAPSHOT_CACHE_KEY (default: gtfs/snapshot.json.gz)
      - ENDPOINT_URL (preferred for LocalStack)
    """

    bucket: str | None = None
    key: str | None = None

    def _bucket(self) -> str:
        value = self.bucket or os.getenv("SNAPSHOT_CACHE_BUCKET")
        if not value:
            raise RuntimeError("Missing SNAPSHOT_CACHE_BUCKET")
        return value

    def _key(self) -> str:
        return (
            self.key or os.getenv("SNAPSHOT_CACHE_KEY") or "gtfs/snapshot.json.gz"
        ).lstrip("/")

    def age_s(self) -> float | None:
        s3 = s3_client()
        try:
            head = s3.head_object(Bucket=self._bucket(), Key=self._key())
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_CODES:
                return None
            raise
        modified: datetime = head["LastModified"]
        return max(0.0, (datetime.now(timezone.utc) - modified).total_seconds())

    def load(self) -> FeedSnapshot:
        s3 = s3_client()
        obj = s3.get_object(Bucket=self._bucket(), Key=self._key())
        body = obj["Body"].read()
        try:
            doc = json.loads(gzip.decompress(body).decode("utf-8"))
        except (OSError, ValueError) as exc:
            raise FeedParseError(f"Corrupt snapshot cache object: {exc}") from exc
        return snapshot_from_document(doc)

    def save(self, snapshot: FeedSnapshot) -> None:
        s3 = s3_client()
        payload = gzip.compress(
            json.dumps(snapshot_to_document(snapshot), separators=(",", ":")).encode(
                "utf-8"
            )
        )
        s3.put_object(
            Bucket=self._bucket(),
            Key=self._key(),
            Body=payload,
            ContentType="application/gzip",
        )
        logger.info("Snapshot cached to s3://%s/%s", self._bucket(), self._key())
