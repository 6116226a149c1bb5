"""
Event store backends and exit-safe transports.

Two capability interfaces with different failure models:
- EventStore: awaitable batch insert whose failure is observable
- BestEffortTransport: one-way send used during teardown; failure is
  never observable and never raised
"""

import asyncio
import contextlib
import fcntl
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

import httpx

from .schema import EventRecord


class EventStoreError(Exception):
    """Raised when the event store rejects or fails a batch insert."""


class EventStore(Protocol):
    async def insert_batch(self, records: List[EventRecord]) -> None:
        ...


class BestEffortTransport(Protocol):
    def send(self, url: str, body: str) -> None:
        ...


def _auth_headers(api_key: Optional[str]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def rest_endpoint(base_url: str, table: str) -> str:
    """REST endpoint for the activity table."""
    return f"{base_url.rstrip('/')}/rest/v1/{table}"


class RestEventStore:
    """Batch insert into a PostgREST-style table endpoint."""

    def __init__(
        self,
        base_url: str,
        table: str = "user_activity",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize store.

        Args:
            base_url: Backend base URL
            table: Activity table name
            api_key: Optional API key sent as apikey and bearer token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.endpoint = rest_endpoint(base_url, table)
        self.api_key = api_key
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={**_auth_headers(api_key), "Prefer": "return=minimal"}
        )

    async def insert_batch(self, records: List[EventRecord]) -> None:
        """
        Insert records in one request.

        Raises:
            EventStoreError: On transport failure or non-2xx response
        """
        if not records:
            return

        payload = [r.to_dict() for r in records]
        try:
            response = await self._client.post(self.endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EventStoreError(
                f"Insert rejected with HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise EventStoreError(f"Insert failed: {e}") from e

    async def aclose(self):
        await self._client.aclose()


class BeaconTransport:
    """
    One-way POST for page teardown.

    Sends synchronously with a short timeout and never reports the outcome.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 2.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def send(self, url: str, body: str) -> None:
        with contextlib.suppress(httpx.HTTPError):
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                client.post(url, content=body, headers=_auth_headers(self.api_key))


class JSONLEventStore:
    """
    Offline event store appending batches to a JSONL file.

    Implements both EventStore and BestEffortTransport so a single file
    collects normal and teardown deliveries.
    """

    def __init__(self, path: Path):
        """
        Initialize store.

        Args:
            path: Path to JSONL file
        """
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append_batch(self, data_list: List[dict]):
        """
        Atomically append multiple entries.

        Args:
            data_list: List of dictionaries to append
        """
        if not data_list:
            return

        with open(self.path, 'a') as f:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                for data in data_list:
                    f.write(json.dumps(data, ensure_ascii=False, default=str) + '\n')
                f.flush()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    async def insert_batch(self, records: List[EventRecord]) -> None:
        """Append records without blocking the event loop."""
        payload = [r.to_dict() for r in records]
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.append_batch, payload)
        except OSError as e:
            raise EventStoreError(f"Failed to write batch to {self.path}: {e}") from e

    def send(self, url: str, body: str) -> None:
        """Exit-safe append; the url is ignored."""
        with contextlib.suppress(OSError, ValueError):
            self.append_batch(json.loads(body))


class JSONLReader:
    """Read JSONL logs with error handling."""

    @staticmethod
    def read_log(
        path: Path,
        filter_fn: Optional[Callable[[dict], bool]] = None
    ) -> List[dict]:
        """
        Read JSONL with optional filtering.

        Args:
            path: Path to JSONL file
            filter_fn: Optional filter function (entry) -> bool

        Returns:
            List of dict entries
        """
        path = Path(path).expanduser()
        if not path.exists():
            return []

        entries = []
        with open(path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError as e:
                    # Log but continue
                    print(f"Warning: Malformed JSON at {path}:{line_num}: {e}",
                          file=sys.stderr)
                    continue

                if filter_fn and not filter_fn(entry):
                    continue

                entries.append(entry)

        return entries
