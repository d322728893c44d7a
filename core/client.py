from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger(__name__)


class AnalyticsFetchError(RuntimeError):
    """The analytics API could not be reached or reported a failure."""


def fetch_analytics(api_url: str, *, session: Optional[requests.Session] = None, timeout: float = 30.0) -> Dict[str, Any]:
    """GET the analytics payload and return its `data` block."""
    url = f"{api_url.rstrip('/')}/api/analytics"
    try:
        if session is None:
            with requests.Session() as http:
                resp = http.get(url, timeout=timeout)
        else:
            resp = session.get(url, timeout=timeout)
        payload = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise AnalyticsFetchError(f"could not load {url}: {exc}") from exc
    if not payload.get("success"):
        raise AnalyticsFetchError(payload.get("error") or f"{url} returned HTTP {resp.status_code}")
    logger.debug("analytics debug block: %s", payload.get("debug"))
    return payload.get("data") or {}
