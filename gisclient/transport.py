"""HTTP access to the WFS server.

All requests are plain HTTP GET requests with Key-Value-Pair parameters.
GetFeature responses can be kept in a "least recently used" cache,
as the same query is often repeated (e.g. when the time extent of a layer is requested again).
"""

from __future__ import annotations

import logging

import httpx
from lru import LRU

from gisclient import conf
from gisclient.exceptions import ExternalParsingError, RemoteServiceError, TransportError
from gisclient.parsers.xml import NSElement, parse_xml_from_string

logger = logging.getLogger(__name__)

EXCEPTION_REPORT_TAGS = ("ExceptionReport", "ServiceExceptionReport")


def get_wfs_endpoint(url: str) -> str:
    """Make sure the URL points to the WFS endpoint of the server."""
    url = url.rstrip("/")
    return url if url.endswith("/wfs") else f"{url}/wfs"


def get_cache_key(params: dict) -> tuple:
    """The signature of a request, independent of the parameter ordering."""
    return tuple(sorted((key, str(value)) for key, value in params.items()))


class WFSTransport:
    """Perform the HTTP requests to a WFS server.

    :param url: The server URL, defaults to the ``GISCLIENT_WFS_URL`` setting.
    :param client: An existing HTTP client to use, otherwise one is created (and closed).
    :param cache_size: Number of GetFeature responses to cache, 0 disables caching.
    """

    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        cache_size: int | None = None,
    ):
        self.url = get_wfs_endpoint(url or conf.GISCLIENT_WFS_URL)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=conf.GISCLIENT_REQUEST_TIMEOUT)

        if cache_size is None:
            cache_size = conf.GISCLIENT_GET_FEATURE_CACHE_SIZE
        self._cache = LRU(cache_size) if cache_size else None

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    def clear_cache(self):
        if self._cache is not None:
            self._cache.clear()

    async def get(self, params: dict, cache=False) -> httpx.Response:
        """Perform a GET request with the given parameters.

        :param params: The KVP parameters of the request.
        :param cache: Whether the response may be reused for identical requests.
        """
        cache_key = None
        if cache and self._cache is not None:
            cache_key = get_cache_key(params)
            try:
                response = self._cache[cache_key]
            except KeyError:
                pass
            else:
                logger.debug("Using cached %s response for %r", params.get("request"), params)
                return response

        request_name = params.get("request", "WFS")
        try:
            response = await self.client.get(self.url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(
                f"Error retrieving {request_name} result: {e}", reason=str(e) or repr(e)
            ) from e

        check_exception_report(response)
        if response.is_error:
            reason = f"HTTP {response.status_code} {response.reason_phrase}"
            raise TransportError(f"Error retrieving {request_name} result: {reason}", reason=reason)

        if cache_key is not None:
            self._cache[cache_key] = response
        return response


def check_exception_report(response: httpx.Response):
    """Raise the error that the server reported in an ``<ows:ExceptionReport>``.
    GeoServer may return these with an HTTP 200 status, so this can't rely on the status code.
    """
    head = response.content[:1024]
    if not any(tag.encode() in head for tag in EXCEPTION_REPORT_TAGS):
        return

    try:
        root = parse_xml_from_string(response.content)
    except ExternalParsingError:
        # Not an XML document, let the status code decide.
        return

    if root.localname in EXCEPTION_REPORT_TAGS:
        raise _read_exception_report(root)


def _read_exception_report(root: NSElement) -> RemoteServiceError:
    """Translate both the OWS 1.x and the WFS 1.0 (ServiceException) notation."""
    exception = root.find_localname("Exception")
    if exception is not None:
        text_element = exception.find_localname("ExceptionText")
        text = text_element.text_content.strip() if text_element is not None else ""
        code = exception.get("exceptionCode")
    else:
        exception = root.find_localname("ServiceException")
        if exception is None:
            return RemoteServiceError("Server returned an empty exception report")
        text = exception.text_content.strip()
        code = exception.get("code")

    logger.debug("Server reported %s: %s", code, text)
    return RemoteServiceError(
        text or "Server returned an exception report", code=code, locator=exception.get("locator")
    )
