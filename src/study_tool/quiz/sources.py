"""Fetchers that retrieve quiz bank resources by candidate location.

The loader only needs "fetch this location, tell me whether it worked"; the
fetchers here provide that over HTTP (``requests``) and over a local
directory tree laid out like the deployed site.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urljoin

import requests

from .errors import FetchError

__all__ = [
    "FetchResponse",
    "ResourceFetcher",
    "HttpFetcher",
    "DirectoryFetcher",
    "build_fetcher",
]

DEFAULT_TIMEOUT_SECONDS = 15.0
USER_AGENT = "study-tool/quiz-loader"


@dataclass(frozen=True)
class FetchResponse:
    """Outcome of a single fetch attempt."""

    location: str
    status: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ResourceFetcher(Protocol):
    async def fetch(self, location: str) -> FetchResponse:
        """Retrieve ``location``; raise :class:`FetchError` on transport errors."""


class HttpFetcher:
    """Fetch resources relative to a base URL using a ``requests`` session."""

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, location: str) -> str:
        return urljoin(self._base_url, location)

    async def fetch(self, location: str) -> FetchResponse:
        url = self.url_for(location)
        return await asyncio.to_thread(self._get, url)

    def _get(self, url: str) -> FetchResponse:
        try:
            response = self._session.get(
                url,
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT},
            )
        except requests.RequestException as exc:
            raise FetchError(url, str(exc)) from exc
        text = response.text if response.ok else ""
        return FetchResponse(
            location=url, status=response.status_code, text=text
        )

    def close(self) -> None:
        self._session.close()


class DirectoryFetcher:
    """Resolve candidate locations against a local directory.

    ``/quizzes/a.json`` and ``./quizzes/a.json`` both map to
    ``<root>/quizzes/a.json``. Missing files answer with status 404 so the
    loader moves on to the next candidate.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, location: str) -> Path:
        relative = location
        while relative.startswith(("./", "/")):
            relative = relative[2:] if relative.startswith("./") else relative[1:]
        return self._root / relative

    async def fetch(self, location: str) -> FetchResponse:
        path = self.path_for(location)
        if not path.is_file():
            return FetchResponse(location=str(path), status=404)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FetchError(str(path), str(exc)) from exc
        return FetchResponse(location=str(path), status=200, text=text)

    def close(self) -> None:
        return None


def build_fetcher(location: str) -> HttpFetcher | DirectoryFetcher:
    """Pick a fetcher for ``location``: URLs go over HTTP, anything else is a path."""

    if location.startswith(("http://", "https://")):
        return HttpFetcher(location)
    return DirectoryFetcher(Path(location))
