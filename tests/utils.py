"""Canned WFS server responses, following what GeoServer produces."""

from __future__ import annotations

import httpx
import orjson

from gisclient.parsers.xml import xmlns

TOPP_NS = "http://www.openplans.org/topp"

XML_NS = (
    f'xmlns:wfs="{xmlns.wfs}"'
    f' xmlns:gml="{xmlns.gml}"'
    f' xmlns:ows="{xmlns.ows}"'
    f' xmlns:xsi="{xmlns.xsi}"'
    f' xmlns:topp="{TOPP_NS}"'
)

DESCRIBE_FEATURE_TYPE = f"""<?xml version="1.0" encoding="UTF-8"?>
<xsd:schema xmlns:xsd="{xmlns.xsd}" xmlns:gml="{xmlns.gml}" xmlns:topp="{TOPP_NS}"
    elementFormDefault="qualified" targetNamespace="{TOPP_NS}">
  <xsd:import namespace="{xmlns.gml}"
      schemaLocation="http://geoserver.test/geoserver/schemas/gml/3.1.1/base/gml.xsd"/>
  <xsd:complexType name="stormsType">
    <xsd:complexContent>
      <xsd:extension base="gml:AbstractFeatureType">
        <xsd:sequence>
          <xsd:element maxOccurs="1" minOccurs="0" name="start_time" nillable="true" type="xsd:dateTime"/>
          <xsd:element maxOccurs="1" minOccurs="0" name="geom" nillable="true" type="gml:MultiPolygonPropertyType"/>
        </xsd:sequence>
      </xsd:extension>
    </xsd:complexContent>
  </xsd:complexType>
  <xsd:element name="storms" substitutionGroup="gml:_Feature" type="topp:stormsType"/>
</xsd:schema>
"""

GET_FEATURE = f"""<?xml version="1.0" encoding="UTF-8"?>
<wfs:FeatureCollection {XML_NS} numberOfFeatures="1" timeStamp="2020-02-01T10:00:00.000Z">
  <gml:featureMembers>
    <topp:storms gml:id="layer.1">
      <topp:start_time>2020-01-01T00:00:00Z</topp:start_time>
      <topp:geom>
        <gml:MultiSurface srsName="urn:x-ogc:def:crs:EPSG:4326">
          <gml:surfaceMember>
            <gml:Polygon>
              <gml:exterior>
                <gml:LinearRing>
                  <gml:posList>52.0 4.0 52.1 4.0 52.1 4.1 52.0 4.0</gml:posList>
                </gml:LinearRing>
              </gml:exterior>
            </gml:Polygon>
          </gml:surfaceMember>
        </gml:MultiSurface>
      </topp:geom>
    </topp:storms>
  </gml:featureMembers>
</wfs:FeatureCollection>
"""

GET_FEATURE_EMPTY = f"""<?xml version="1.0" encoding="UTF-8"?>
<wfs:FeatureCollection {XML_NS} numberOfFeatures="0" timeStamp="2020-02-01T10:00:00.000Z"/>
"""

GET_FEATURE_TWO_WORKSPACES = f"""<?xml version="1.0" encoding="UTF-8"?>
<wfs:FeatureCollection xmlns:wfs="{xmlns.wfs}" xmlns:gml="{xmlns.gml}"
    xmlns:ws1="http://example.org/ws1" xmlns:ws2="http://example.org/ws2">
  <gml:featureMembers>
    <ws1:storms gml:id="storms.1">
      <ws1:start_time>A</ws1:start_time>
    </ws1:storms>
    <ws2:storms gml:id="storms.2">
      <ws2:start_time>B</ws2:start_time>
    </ws2:storms>
  </gml:featureMembers>
</wfs:FeatureCollection>
"""

EXCEPTION_REPORT = f"""<?xml version="1.0" encoding="UTF-8"?>
<ows:ExceptionReport xmlns:ows="{xmlns.ows}" version="1.0.0">
  <ows:Exception exceptionCode="InvalidParameterValue" locator="typeName">
    <ows:ExceptionText>Feature type topp:unknown unknown</ows:ExceptionText>
  </ows:Exception>
</ows:ExceptionReport>
"""


def get_feature_document(*features: str) -> str:
    """Wrap feature elements in a GetFeature response."""
    return (
        f'<wfs:FeatureCollection {XML_NS} numberOfFeatures="{len(features)}">'
        f"<gml:featureMembers>{''.join(features)}</gml:featureMembers>"
        "</wfs:FeatureCollection>"
    )


def read_json(content) -> dict:
    return orjson.loads(content)


class WFSServer:
    """A fake WFS server for :class:`httpx.MockTransport`.
    It answers each operation with a configured document, and records all requests.
    """

    def __init__(self):
        self.responses = {}
        self.requests: list[httpx.Request] = []

    def respond(self, operation: str, content: str | bytes, status_code=200):
        self.responses[operation] = (status_code, content)

    def fail(self, operation: str, message="Connection refused"):
        self.responses[operation] = message

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self.responses[request.url.params["request"]]
        if isinstance(result, str):
            raise httpx.ConnectError(result, request=request)

        status_code, content = result
        return httpx.Response(
            status_code, content=content, headers={"Content-Type": "text/xml; subtype=gml/3.1.1"}
        )

    @property
    def last_params(self) -> dict[str, str]:
        return dict(self.requests[-1].url.params)
