import httpx
import pytest

from gisclient.exceptions import RemoteServiceError, TransportError
from gisclient.transport import (
    WFSTransport,
    check_exception_report,
    get_cache_key,
    get_wfs_endpoint,
)
from tests.utils import EXCEPTION_REPORT, GET_FEATURE


@pytest.mark.parametrize(
    "url",
    [
        "http://geoserver.test/geoserver",
        "http://geoserver.test/geoserver/",
        "http://geoserver.test/geoserver/wfs",
    ],
)
def test_get_wfs_endpoint(url):
    assert get_wfs_endpoint(url) == "http://geoserver.test/geoserver/wfs"


def test_get_cache_key():
    """Prove that parameter ordering and value types don't affect the cache key."""
    assert get_cache_key({"a": 1, "b": "x"}) == get_cache_key({"b": "x", "a": "1"})
    assert get_cache_key({"a": 1}) != get_cache_key({"a": 2})


class TestCheckExceptionReport:
    """Prove that server errors are detected, even with an HTTP 200 status."""

    def test_ows_exception(self):
        response = httpx.Response(200, content=EXCEPTION_REPORT)
        with pytest.raises(RemoteServiceError) as exc_info:
            check_exception_report(response)

        assert exc_info.value.code == "InvalidParameterValue"
        assert exc_info.value.locator == "typeName"
        assert exc_info.value.text == "Feature type topp:unknown unknown"
        assert str(exc_info.value) == (
            "InvalidParameterValue: Feature type topp:unknown unknown (locator: typeName)"
        )

    def test_service_exception(self):
        """Prove the WFS 1.0 notation is also recognized."""
        response = httpx.Response(
            200,
            content=(
                '<ServiceExceptionReport version="1.2.0" xmlns="http://www.opengis.net/ogc">'
                '<ServiceException code="InvalidParameterValue" locator="sortby">\n'
                "  Illegal property name: foo\n"
                "</ServiceException></ServiceExceptionReport>"
            ),
        )
        with pytest.raises(RemoteServiceError, match="Illegal property name: foo") as exc_info:
            check_exception_report(response)
        assert exc_info.value.locator == "sortby"

    def test_feature_collection(self):
        check_exception_report(httpx.Response(200, content=GET_FEATURE))

    def test_not_xml(self):
        check_exception_report(httpx.Response(500, content=b"ExceptionReport <<"))


@pytest.mark.anyio
class TestWFSTransport:
    """Prove the HTTP requests are performed and cached."""

    @pytest.fixture()
    def calls(self):
        return []

    @pytest.fixture()
    async def client(self, calls):
        def handler(request: httpx.Request):
            calls.append(request)
            return httpx.Response(200, content=GET_FEATURE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            yield client

    async def test_url(self, client, calls):
        transport = WFSTransport(client=client)
        await transport.get({"request": "GetFeature", "typeName": "topp:storms"})

        url = calls[0].url
        assert (url.host, url.path) == ("geoserver.test", "/geoserver/wfs")
        assert dict(url.params) == {"request": "GetFeature", "typeName": "topp:storms"}

    async def test_cache(self, client, calls):
        transport = WFSTransport(client=client)
        params = {"request": "GetFeature", "typeName": "topp:storms"}
        first = await transport.get(params, cache=True)
        second = await transport.get(params, cache=True)

        assert first is second
        assert len(calls) == 1

        transport.clear_cache()
        await transport.get(params, cache=True)
        assert len(calls) == 2

    async def test_uncached(self, client, calls):
        """Prove requests are only cached when asked for."""
        transport = WFSTransport(client=client)
        params = {"request": "DescribeFeatureType", "typeName": "topp:storms"}
        await transport.get(params)
        await transport.get(params)
        assert len(calls) == 2

    async def test_cache_disabled(self, client, calls):
        transport = WFSTransport(client=client, cache_size=0)
        params = {"request": "GetFeature", "typeName": "topp:storms"}
        await transport.get(params, cache=True)
        await transport.get(params, cache=True)
        assert len(calls) == 2

    async def test_cache_size_setting(self, client, calls, settings):
        settings.GISCLIENT_GET_FEATURE_CACHE_SIZE = 0
        transport = WFSTransport(client=client)
        params = {"request": "GetFeature", "typeName": "topp:storms"}
        await transport.get(params, cache=True)
        await transport.get(params, cache=True)
        assert len(calls) == 2

    async def test_http_error(self):
        mock = httpx.MockTransport(lambda request: httpx.Response(503))
        async with httpx.AsyncClient(transport=mock) as client:
            transport = WFSTransport(client=client)
            with pytest.raises(TransportError, match="HTTP 503 Service Unavailable") as exc_info:
                await transport.get({"request": "GetFeature"})

        assert exc_info.value.reason == "HTTP 503 Service Unavailable"

    async def test_errors_not_cached(self):
        responses = [httpx.Response(503), httpx.Response(200, content=GET_FEATURE)]
        mock = httpx.MockTransport(lambda request: responses.pop(0))
        async with httpx.AsyncClient(transport=mock) as client:
            transport = WFSTransport(client=client)
            with pytest.raises(TransportError):
                await transport.get({"request": "GetFeature"}, cache=True)

            response = await transport.get({"request": "GetFeature"}, cache=True)
            assert response.status_code == 200

    async def test_injected_client_stays_open(self, client):
        transport = WFSTransport(client=client)
        await transport.aclose()
        assert not client.is_closed
