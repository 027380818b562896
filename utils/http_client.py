from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional
import logging

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _build_retry(total: int = 0, backoff_factor: float = 0.6) -> Retry:
    """
    Exponential backoff via urllib3 Retry.
    Scrapes are not retried unless HTTP_MAX_RETRIES is raised above 0.
    """
    return Retry(
        total=total,
        read=total,
        connect=total,
        status=total,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504, 522),
        allowed_methods=frozenset({"HEAD", "GET", "OPTIONS"}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )


class HttpClient:
    """
    Small wrapper around requests.Session with sane defaults:
    - Browser-like headers (source sites serve HTML, not an API)
    - Optional retries + backoff
    - Per-request timeout
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_retries: int = 0,
        user_agent: Optional[str] = None,
    ) -> None:
        self._timeout = timeout
        self._session = Session()

        adapter = HTTPAdapter(max_retries=_build_retry(total=max_retries))
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

        self._default_headers: dict[str, str] = {
            "Accept": DEFAULT_ACCEPT,
            "Accept-Language": "en-US,en;q=0.9",
        }
        if user_agent:
            self._default_headers["User-Agent"] = user_agent

    def get(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Response:
        merged: MutableMapping[str, str] = dict(self._default_headers)
        if headers:
            merged.update(headers)
        t = timeout or self._timeout
        return self._session.get(url, params=params, headers=merged, timeout=t)

    def get_text(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        resp = self.get(url, headers=headers, timeout=timeout)
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            logger.warning("HTTP error %s for %s", e, resp.url)
            raise
        return resp.text


def default_client(user_agent: Optional[str] = None) -> HttpClient:
    """Client configured from settings; providers build one when none is passed."""
    from config import settings

    return HttpClient(
        timeout=settings.http_timeout_seconds,
        max_retries=settings.http_max_retries,
        user_agent=user_agent or settings.http_user_agent,
    )
