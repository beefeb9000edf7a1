"""Dataset sources: where manifest and graph files are fetched from."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from .constants import FETCH_TIMEOUT_SECONDS
from .exceptions import FetchFailureError

logger = logging.getLogger(__name__)


class DatasetSource:
    """Fetches JSON documents by path relative to the dataset root."""

    async def fetch_json(self, rel_path: str) -> Any:
        raise NotImplementedError

    async def aclose(self):
        pass


class HttpDatasetSource(DatasetSource):
    """Fetches dataset files over HTTP from a static base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_json(self, rel_path: str) -> Any:
        url = f"{self.base_url}{rel_path.lstrip('/')}"
        try:
            response = await self.client.get(url)
        except httpx.TimeoutException:
            raise FetchFailureError(rel_path, "timeout")
        except httpx.HTTPError as e:
            raise FetchFailureError(rel_path, str(e) or type(e).__name__)

        if response.status_code != 200:
            raise FetchFailureError(rel_path, str(response.status_code))

        try:
            return response.json()
        except ValueError as e:
            raise FetchFailureError(rel_path, f"invalid JSON: {e}")

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()


class FileDatasetSource(DatasetSource):
    """Reads dataset files from a local directory."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _read(self, rel_path: str) -> Any:
        path = self.root / rel_path
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise FetchFailureError(rel_path, "404")
        except OSError as e:
            raise FetchFailureError(rel_path, str(e))
        except json.JSONDecodeError as e:
            raise FetchFailureError(rel_path, f"invalid JSON: {e}")

    async def fetch_json(self, rel_path: str) -> Any:
        return await asyncio.to_thread(self._read, rel_path)
