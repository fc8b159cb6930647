"""
Key/value REST client (Upstash / Vercel KV) for bookings and blocked dates.
"""

import json
import logging
from typing import Any, Dict
from urllib.parse import quote

import requests

from ..domain.exceptions import StoreError
from .schedule_store import ScheduleStore

logger = logging.getLogger(__name__)


class KVRestStore(ScheduleStore):
    """
    Store backed by a Redis-compatible KV database reached over HTTPS.

    Uses the ``GET /get/<key>`` and ``POST /set/<key>`` REST commands; values
    are JSON strings.
    """

    def __init__(self, url: str, token: str, key_prefix: str = "heyu_test", timeout: int = 10):
        """
        Initialize the KV client.

        Args:
            url: REST endpoint of the KV database
            token: Bearer token for the endpoint
            key_prefix: Prefix isolating this salon's keys
            timeout: Request timeout in seconds
        """
        super().__init__(key_prefix=key_prefix)
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
        }

    def connect(self) -> None:
        """
        Verify the endpoint answers by reading a probe key.

        Raises:
            StoreError: If the KV database cannot be reached
        """
        self._command("get", self.key("test:connection"))
        logger.info("KV connection verified - using key prefix: %s", self.key_prefix)

    def _command(self, command: str, key: str, body: str | None = None) -> Any:
        url = f"{self.url}/{command}/{quote(key, safe='')}"

        try:
            if body is None:
                response = requests.get(url, headers=self.headers, timeout=self.timeout)
            else:
                response = requests.post(url, headers=self.headers, data=body.encode("utf-8"), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            raise StoreError(f"KV command {command} {key} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"KV command {command} {key} returned invalid JSON: {e}") from e

        if "error" in data:
            raise StoreError(f"KV command {command} {key} failed: {data['error']}")

        return data.get("result")

    def _read_document(self, key: str) -> Any:
        result = self._command("get", key)
        if result is None:
            return None

        # Some clients store plain JSON values instead of strings
        if not isinstance(result, str):
            return result

        try:
            return json.loads(result)
        except ValueError as exc:
            raise StoreError(f"Value under {key} is not valid JSON: {exc}") from exc

    def _write_document(self, key: str, document: Dict[str, Any]) -> None:
        self._command("set", key, body=json.dumps(document, ensure_ascii=False))
