"""
Outbound fetches through the egress proxy.

One pooled ``requests.Session`` is shared by all handlers. It keeps no cookies,
and the proxy comes from ``HTTP_PROXY`` at call time so a pod can be re-pointed
without rebuilding the client; environment proxy discovery is otherwise disabled.

Each fetch runs on a worker thread so the caller can give up after
REQUEST_TIMEOUT no matter how slowly the upstream sends its body.
"""
import logging
import os
import threading
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime
from http.cookiejar import DefaultCookiePolicy

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5
# per socket read
READ_TIMEOUT = 10
# whole request, connect through last body byte
REQUEST_TIMEOUT = 10
POOL_MAXSIZE = 100

TEXT = "text"
JSON = "json"

Target = namedtuple("Target", ["name", "url", "failure", "shape"])

EXTERNAL_IP = Target("external-ip", "https://api.ipify.org", "Error getting external IP", TEXT)
IPINFO = Target("ipinfo", "https://ipinfo.io/json", "Error connecting to ipinfo.io", JSON)
HTTPBIN = Target("httpbin", "https://httpbin.org/json", "Error connecting to httpbin.org", JSON)

_workers = ThreadPoolExecutor(max_workers=POOL_MAXSIZE, thread_name_prefix="egress")


class EgressError(Exception):
    """An outbound fetch failed; ``str(err)`` is the message returned to the caller."""


def current_time():
    """RFC 3339 timestamp with the local UTC offset."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def build_session():
    session = requests.Session()
    # only HTTP_PROXY counts, see proxies_from_env()
    session.trust_env = False
    # nothing set by one upstream reply may ride along on a later tenant's request
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    adapter = HTTPAdapter(pool_connections=POOL_MAXSIZE, pool_maxsize=POOL_MAXSIZE, max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def proxies_from_env():
    proxy = os.environ.get("HTTP_PROXY")
    if not proxy:
        return None
    return {"http": proxy, "https": proxy}


def _get(session, target, headers_in):
    """Blocking GET with the body fully read. Sets ``headers_in`` once the status line is in."""
    try:
        resp = session.get(
            target.url,
            proxies=proxies_from_env(),
            timeout=(CONNECT_TIMEOUT, READ_TIMEOUT),
            stream=True,
        )
    except requests.RequestException as e:
        raise EgressError(f"{target.failure}: {e}") from e
    headers_in.set()

    with resp:
        try:
            resp.content
        except requests.RequestException as e:
            raise EgressError(f"Error reading response: {e}") from e
    return resp


def fetch(session, target):
    """
    GET ``target.url`` once through the proxy and annotate the result.

    Returns a dict ready for JSON serialization. Raises EgressError on connect,
    read or decode failure, or when the whole exchange takes longer than
    REQUEST_TIMEOUT. The upstream status code is not checked.
    """
    headers_in = threading.Event()
    future = _workers.submit(_get, session, target, headers_in)
    try:
        resp = future.result(timeout=REQUEST_TIMEOUT)
    except FutureTimeout:
        # the worker is left to hit READ_TIMEOUT or finish on its own
        if headers_in.is_set():
            raise EgressError(f"Error reading response: timeout exceeded while reading body ({REQUEST_TIMEOUT}s)")
        raise EgressError(f"{target.failure}: timeout exceeded after {REQUEST_TIMEOUT}s")

    if resp.status_code >= 400:
        logger.warning("%s answered %s, passing body through", target.url, resp.status_code)

    if target.shape == TEXT:
        return {"ip": resp.text, "currentTime": current_time()}

    try:
        result = resp.json()
    except ValueError as e:
        raise EgressError(f"Error parsing response: {e}") from e
    if not isinstance(result, dict):
        raise EgressError(f"Error parsing response: expected a JSON object, got {type(result).__name__}")

    result["currentTime"] = current_time()
    return result
