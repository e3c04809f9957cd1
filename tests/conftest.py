from __future__ import annotations

import httpx
import pytest

from gisclient import conf
from gisclient.service import WebFeatureService
from gisclient.types import FeatureTypeSchema, FieldDescriptor
from tests.utils import WFSServer


def pytest_configure():
    print(f"Running against GISCLIENT_WFS_URL={conf.GISCLIENT_WFS_URL}")


@pytest.fixture()
def anyio_backend():
    # Only asyncio is installed, don't run the tests with trio too.
    return "asyncio"


@pytest.fixture()
def wfs_server() -> WFSServer:
    return WFSServer()


@pytest.fixture()
async def wfs(wfs_server):
    """The WFS client, talking to the fake server."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(wfs_server)) as client:
        yield WebFeatureService(client=client)


@pytest.fixture()
def storms_schema() -> FeatureTypeSchema:
    return FeatureTypeSchema(
        "storms",
        [
            FieldDescriptor("start_time", "xsd:dateTime"),
            FieldDescriptor("geom", "gml:MultiPolygonPropertyType"),
        ],
    )
