from __future__ import annotations

"""Small HTTP GET-JSON helper with bounded retries.

Uses stdlib urllib; the upstream rate provider only needs plain GETs that
return JSON objects, so a full client library is not required here.
"""
import http.client
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger("app.http")

USER_AGENT = "budget-fx-rates/0.1"


class HttpError(Exception):
    pass


def build_url(base_url: str, path: str, params: Optional[Mapping[str, str]] = None) -> str:
    url = base_url.rstrip("/") + "/" + path.lstrip("/")
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"
    return url


def get_json(
    url: str, *, timeout: float = 5.0, retries: int = 2, backoff: float = 0.5
) -> Dict[str, Any]:
    """GET ``url`` and decode a JSON object body.

    Retries ``retries`` times on network errors, HTTP 5xx and bad JSON,
    sleeping ``backoff * 2**attempt`` in between. A 4xx answer is final.
    Raises HttpError once all attempts are exhausted.
    """
    last_err: Optional[Exception] = None
    request = urllib.request.Request(
        url, headers={"Accept": "application/json", "User-Agent": USER_AGENT}
    )
    for attempt in range(retries + 1):
        try:
            with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec B310
                if resp.status >= 400:
                    raise HttpError(f"HTTP {resp.status} for {url}")
                data = json.loads(resp.read().decode("utf-8"))
                if not isinstance(data, dict):
                    raise HttpError(f"expected a JSON object from {url}")
                return data
        except urllib.error.HTTPError as e:
            e.close()
            last_err = e
            if e.code < 500:
                break
        except (
            OSError,
            http.client.HTTPException,
            HttpError,
            ValueError,
        ) as e:  # OSError covers URLError / timeouts / resets; ValueError JSON decode
            last_err = e
        if attempt == retries:
            break
        logger.debug(
            "retrying upstream request",
            extra={"url": url, "attempt": attempt + 1, "error": str(last_err)},
        )
        time.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}")
