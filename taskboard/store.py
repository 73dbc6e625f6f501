"""HTTP client for the single JSON document resource.

The pages may be served from any origin while the data backend listens on a
fixed local port, so every call walks a list of candidate base URLs and
remembers the first one that answers.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import requests

API_PATH = "/api/data"
BACKEND_PORT = 57891
FALLBACK_ORIGINS = (
    f"http://localhost:{BACKEND_PORT}",
    f"http://127.0.0.1:{BACKEND_PORT}",
)

log = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class UnreachableBackend(StoreError):
    """Every candidate address failed (network error or non-2xx status)."""


class RejectedPayload(StoreError):
    """The backend refused the document body (malformed JSON)."""

    def __init__(self, status: int, detail: str = ""):
        super().__init__(f"HTTP {status}: {detail}" if detail else f"HTTP {status}")
        self.status = status
        self.detail = detail


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class RemoteStore:
    """fetch()/replace() over GET and PUT of /api/data with candidate address fallback.

    ``page_origin`` plays the role of a bare relative path: the origin the UI
    itself was loaded from, tried before the loopback fallbacks.
    """

    def __init__(self, page_origin: str | None = None, session: requests.Session | None = None,
                 fallbacks=FALLBACK_ORIGINS, timeout: float | None = None):
        self.page_origin = page_origin.rstrip("/") if page_origin else None
        self.session = session or requests.Session()
        self.fallbacks = tuple(fallbacks)
        self.timeout = timeout
        self.resolved_base: str = ""

    def candidates(self, path: str) -> List[str]:
        urls = [
            f"{self.resolved_base}{path}" if self.resolved_base else None,
            f"{self.page_origin}{path}" if self.page_origin else None,
        ]
        urls.extend(f"{origin}{path}" for origin in self.fallbacks)
        return [u for u in urls if u]

    def request(self, method: str, path: str, payload: Any = None):
        last_error: Optional[StoreError] = None
        for url in self.candidates(path):
            try:
                res = self.session.request(method, url, json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                log.debug(f"{method} {url} failed: {e}")
                last_error = UnreachableBackend(f"{url}: {e}")
                continue
            if not res.ok:
                log.debug(f"{method} {url} answered HTTP {res.status_code}")
                if res.status_code == 400 and method == "PUT":
                    last_error = RejectedPayload(res.status_code, _error_detail(res))
                else:
                    last_error = UnreachableBackend(f"HTTP {res.status_code}")
                continue
            self.resolved_base = origin_of(url)
            return res
        raise last_error or UnreachableBackend("Failed to reach API")

    def fetch(self) -> Dict[str, Any]:
        res = self.request("GET", API_PATH)
        return res.json()

    def replace(self, document: Dict[str, Any]) -> Dict[str, Any]:
        res = self.request("PUT", API_PATH, payload=document)
        return res.json()


def _error_detail(res) -> str:
    try:
        return (res.json() or {}).get("error", "")
    except ValueError:
        return ""
