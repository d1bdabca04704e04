from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .models import ChecksumRecord, RemoteObject
from .observability import Observability

logger = logging.getLogger(__name__)

CHECKSUM_ATTRIBUTES = ["Checksum", "ObjectParts"]


class IncompleteInventory(RuntimeError):
    def __init__(self, bucket: str, prefix: str, pages: int, reason: str) -> None:
        super().__init__(
            f"listing of s3://{bucket}/{prefix} stopped after {pages} page(s): {reason}"
        )
        self.bucket = bucket
        self.prefix = prefix
        self.pages = pages


class AttributeUnavailable(RuntimeError):
    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"checksum attributes unavailable for {key}: {reason}")
        self.key = key
        self.reason = reason


class S3Inventory:
    def __init__(
        self,
        client: Any,
        bucket: str,
        *,
        page_size: int = 1000,
        max_parts: int = 1000,
        metrics: Optional[Observability] = None,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.page_size = max(1, int(page_size))
        self.max_parts = max(1, int(max_parts))
        self._metrics = metrics

    def list_objects(self, prefix: str = "") -> List[RemoteObject]:
        """Every non-empty object under ``prefix``; all pages or IncompleteInventory."""
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket,
            "PaginationConfig": {"PageSize": self.page_size},
        }
        if prefix:
            kwargs["Prefix"] = prefix

        objects: Dict[str, RemoteObject] = {}
        pages = 0
        logger.info("listing objects in s3://%s/%s", self.bucket, prefix)
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(**kwargs):
                pages += 1
                batch = 0
                for entry in page.get("Contents") or []:
                    key = entry.get("Key")
                    size = int(entry.get("Size") or 0)
                    # zero-size entries are directory markers
                    if not key or size <= 0:
                        continue
                    objects[key] = RemoteObject(key=key, size=size)
                    batch += 1
                logger.info("received batch of %d objects (page %d)", batch, pages)
                if self._metrics:
                    self._metrics.record_listing_page(batch)
                if page.get("IsTruncated") and not page.get("NextContinuationToken"):
                    raise IncompleteInventory(
                        self.bucket,
                        prefix,
                        pages,
                        "truncated page without continuation token",
                    )
        except (BotoCoreError, ClientError) as exc:
            raise IncompleteInventory(self.bucket, prefix, pages, str(exc)) from exc

        logger.info("listing complete: %d objects in %d page(s)", len(objects), pages)
        return list(objects.values())

    def fetch_attributes(self, key: str) -> ChecksumRecord:
        marker: Optional[int] = None
        checksum: Optional[str] = None
        parts: Dict[int, int] = {}
        multipart = False
        try:
            while True:
                kwargs: Dict[str, Any] = {
                    "Bucket": self.bucket,
                    "Key": key,
                    "ObjectAttributes": CHECKSUM_ATTRIBUTES,
                    "MaxParts": self.max_parts,
                }
                if marker is not None:
                    kwargs["PartNumberMarker"] = marker
                response = self.client.get_object_attributes(**kwargs)
                if checksum is None:
                    checksum = (response.get("Checksum") or {}).get("ChecksumSHA256")
                object_parts = response.get("ObjectParts") or {}
                for part in object_parts.get("Parts") or []:
                    multipart = True
                    parts[int(part["PartNumber"])] = int(part["Size"])
                if not object_parts.get("IsTruncated"):
                    break
                next_marker = object_parts.get("NextPartNumberMarker")
                if next_marker is None or next_marker == marker:
                    raise AttributeUnavailable(key, "part listing did not advance")
                marker = int(next_marker)
        except (BotoCoreError, ClientError) as exc:
            raise AttributeUnavailable(key, str(exc)) from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise AttributeUnavailable(key, f"malformed response: {exc!r}") from exc

        if not checksum:
            return ChecksumRecord(key=key, error="no SHA256 checksum")
        part_sizes = [parts[number] for number in sorted(parts)] if multipart else None
        return ChecksumRecord(key=key, checksum=checksum, part_sizes=part_sizes)

    def fetch_record(self, key: str) -> ChecksumRecord:
        """Like fetch_attributes, but failures become a checksum-less record."""
        try:
            record = self.fetch_attributes(key)
        except AttributeUnavailable as exc:
            logger.warning("%s", exc)
            record = ChecksumRecord(key=key, error=exc.reason)
        if self._metrics:
            self._metrics.record_fetch(record.checksum is not None)
        return record
