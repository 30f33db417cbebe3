"""Data models for stored response records."""

import base64
import binascii
import json
import math
from dataclasses import dataclass, field
from typing import Any

from zephyr.core.content_type import guess_content_type
from zephyr.core.exceptions import RecordMalformed
from zephyr.core.utils import now_ms


@dataclass
class CacheRecord:
    """A cached origin response.

    Attributes:
        key: Cache key the record is stored under
        body: Raw response bytes as received from the origin
        headers: Response headers with lower-cased names
        valid_until: Expiry in epoch milliseconds (inclusive)
        status_code: Origin status at store time (hits are always served as 200)
        stored_at: When the record was written, in epoch milliseconds
    """

    key: str
    body: bytes
    headers: dict[str, str]
    valid_until: int
    status_code: int = 200
    stored_at: int = field(default_factory=now_ms)

    def is_valid(self, now: int) -> bool:
        """Whether the record may still be served at ``now``."""
        return now <= self.valid_until

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "application/octet-stream")

    def ensure_content_type(self, url: str) -> None:
        """Fill in ``content-type`` from the URL extension when missing."""
        if not self.headers.get("content-type"):
            self.headers["content-type"] = guess_content_type(url)

    def to_dict(self) -> dict[str, Any]:
        """Serialize record to dict for JSON storage."""
        return {
            "key": self.key,
            "body": base64.b64encode(self.body).decode("ascii"),
            "headers": dict(self.headers),
            "valid_until": self.valid_until,
            "status_code": self.status_code,
            "stored_at": self.stored_at,
        }

    def to_json(self) -> str:
        """Serialize record to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any], key: str | None = None) -> "CacheRecord":
        """Deserialize record from dict.

        Raises:
            RecordMalformed: If ``body``, ``headers`` or ``valid_until`` is
                missing or has the wrong type.
        """
        key = data.get("key", key)
        for name in ("body", "headers", "valid_until"):
            if data.get(name) is None:
                raise RecordMalformed(key, f"missing {name}")

        body = data["body"]
        if isinstance(body, str):
            try:
                body = base64.b64decode(body.encode("ascii"), validate=True)
            except (binascii.Error, UnicodeEncodeError) as exc:
                raise RecordMalformed(key, "body is not valid base64") from exc
        elif not isinstance(body, (bytes, bytearray)):
            raise RecordMalformed(key, "body must be bytes")

        headers = data["headers"]
        if not isinstance(headers, dict):
            raise RecordMalformed(key, "headers must be a mapping")

        valid_until = data["valid_until"]
        if isinstance(valid_until, bool) or not isinstance(valid_until, (int, float)):
            raise RecordMalformed(key, "valid_until must be a timestamp")
        if not math.isfinite(valid_until):
            raise RecordMalformed(key, "valid_until must be finite")

        return cls(
            key=key if key is not None else "",
            body=bytes(body),
            headers={str(k).lower(): str(v) for k, v in headers.items()},
            valid_until=int(valid_until),
            status_code=data.get("status_code", 200),
            stored_at=data.get("stored_at") or now_ms(),
        )

    @classmethod
    def from_json(cls, json_str: str, key: str | None = None) -> "CacheRecord":
        """Deserialize record from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise RecordMalformed(key, "not valid JSON") from exc
        if not isinstance(data, dict):
            raise RecordMalformed(key, "not a JSON object")
        return cls.from_dict(data, key=key)
