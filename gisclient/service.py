"""The WFS operations that the application uses.

Usage::

    async with WebFeatureService() as wfs:
        schema = await wfs.extract_fields_and_types("storms", "topp")
        first = await wfs.find_time_min("storms", "topp", "start_time")
        features = await wfs.get_filtered_json_features(
            "storms", "topp", schema, {"cql_filter": "start_time > 2020-01-01"}
        )

Each operation performs a single HTTP request. Independent operations can run
concurrently (e.g. with :func:`asyncio.gather`), they only share the GetFeature cache.
"""

from __future__ import annotations

import logging

import httpx

from gisclient import conf
from gisclient.exceptions import EmptyResponseError, ParseError, WFSClientError
from gisclient.parsers.features import read_feature_collection, read_field_value
from gisclient.parsers.schema import read_feature_type_schema
from gisclient.parsers.xml import parse_xml_from_string
from gisclient.query import SortOrder, build_query, get_sort_by, get_type_name
from gisclient.transport import WFSTransport
from gisclient.types import FeatureCollection, FeatureTypeSchema

logger = logging.getLogger(__name__)


class WebFeatureService:
    """Client for the WFS endpoint of a GeoServer instance.

    :param url: The server URL, defaults to the ``GISCLIENT_WFS_URL`` setting.
    :param client: An existing :class:`httpx.AsyncClient` to perform the requests with.
    :param transport: A configured :class:`~gisclient.transport.WFSTransport`, replaces both
        the ``url`` and ``client`` arguments.
    """

    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        transport: WFSTransport | None = None,
    ):
        self.transport = transport or WFSTransport(url, client=client)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.transport.aclose()

    # -- DescribeFeatureType

    async def describe_feature_type(self, name: str, workspace: str) -> httpx.Response:
        """Retrieve the DescribeFeatureType response for the layer."""
        params = build_query("DescribeFeatureType", get_type_name(name, workspace))
        response = await self.transport.get(params)
        logger.debug("Successfully retrieved DescribeFeatureType result for %s:%s", workspace, name)
        return response

    async def extract_fields_and_types(self, name: str, workspace: str) -> FeatureTypeSchema:
        """Determine all fields and their types for a layer.

        :raises TransportError: When the request failed.
        :raises EmptyResponseError: When the server returned no document.
        :raises ParseError: When the document doesn't describe the layer.
        """
        response = await self.describe_feature_type(name, workspace)
        if response is None or not response.content.strip():
            raise EmptyResponseError("Null response received from DescribeFeatureType")

        try:
            root = parse_xml_from_string(response.content)
            return read_feature_type_schema(root, name)
        except ParseError as e:
            logger.error(
                "Unable to parse DescribeFeatureType response for %s:%s: %s", workspace, name, e
            )
            raise

    # -- GetFeature

    async def get_feature(
        self, name: str, workspace: str, params: dict | None = None
    ) -> httpx.Response:
        """Retrieve the GetFeature response for the layer.
        The basic request can be augmented with any WFS parameter in ``params``.
        Identical requests are answered from the cache.
        """
        query = build_query("GetFeature", get_type_name(name, workspace), params)
        response = await self.transport.get(query, cache=True)
        logger.debug("Successfully retrieved GetFeature result for %s:%s", workspace, name)
        return response

    async def get_features_as_json(
        self, name: str, workspace: str, schema: FeatureTypeSchema, params: dict | None = None
    ) -> FeatureCollection:
        """Retrieve the features as GML, and convert these into a GeoJSON-like collection.

        Geometry fields are not included in the properties.
        When the response can't be read, an empty collection is returned.

        :param schema: The layer fields, as given by :meth:`extract_fields_and_types`.
        :param params: Additional WFS parameters of the request, e.g. a ``cql_filter``.
        """
        allowed_fields = schema.get_non_geometry_names(conf.GISCLIENT_GEOMETRY_TYPE_MARKER)

        # The output format is fixed, as this is the format the parser reads.
        params = {**(params or {}), "outputFormat": conf.GISCLIENT_WFS_OUTPUT_FORMAT}
        response = await self.get_feature(name, workspace, params)

        try:
            root = parse_xml_from_string(response.content)
            return read_feature_collection(root, allowed_fields)
        except ParseError as e:
            logger.warning(
                "Unable to find any features in %s:%s with params: %r (%s)",
                workspace,
                name,
                params,
                e,
            )
            return FeatureCollection()

    async def get_filtered_json_features(
        self,
        name: str,
        workspace: str,
        schema: FeatureTypeSchema,
        filters: dict | None,
        extended_params: dict | None = None,
    ) -> FeatureCollection:
        """Retrieve the features that match the filters.
        The ``extended_params`` take precedence over the ``filters``.
        """
        params = {**(filters or {}), **(extended_params or {})}
        return await self.get_features_as_json(name, workspace, schema, params)

    # -- Time extent

    async def find_time_min_max(
        self, name: str, workspace: str, field: str, direction: str | SortOrder
    ) -> str:
        """Find the first or last value of a field, by requesting a single sorted record.
        This avoids scanning the whole table.

        :param direction: ``A`` for the minimum value, ``D`` for the maximum value.
        :raises FieldNotFoundError: When the response has no value, typically as the layer is empty.
        :raises PrefixMismatchError: When the field only exists outside the workspace namespace.
        """
        params = {"maxFeatures": 1, "sortby": get_sort_by(field, direction)}
        try:
            response = await self.get_feature(name, workspace, params)
        except WFSClientError:
            logger.info("Unable to identify a min/max time for field %s", field)
            raise

        root = parse_xml_from_string(response.content)
        return read_field_value(root, field, workspace)

    async def find_time_min(self, name: str, workspace: str, field: str) -> str:
        """Find the earliest value of a time field."""
        return await self.find_time_min_max(name, workspace, field, SortOrder.ASC)

    async def find_time_max(self, name: str, workspace: str, field: str) -> str:
        """Find the latest value of a time field."""
        return await self.find_time_min_max(name, workspace, field, SortOrder.DESC)

    # -- Presence

    async def is_data_present(
        self, name: str, workspace: str, schema: FeatureTypeSchema, filters: dict | None = None
    ) -> bool:
        """Tell whether any record matches the filters.

        Any failure is reported as ``False``, so this never raises a WFS error.
        """
        try:
            collection = await self.get_filtered_json_features(
                name, workspace, schema, filters, {"maxFeatures": 1}
            )
        except WFSClientError as e:
            logger.warning("Unable to check data presence in %s:%s: %s", workspace, name, e)
            return False

        return len(collection) == 1
