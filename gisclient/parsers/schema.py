"""Reading the ``DescribeFeatureType`` response.

GeoServer describes a feature type as an XML Schema document, for example:

.. code-block:: xml

    <xsd:schema xmlns:xsd="http://www.w3.org/2001/XMLSchema" xmlns:gml="http://www.opengis.net/gml">
      <xsd:import namespace="http://www.opengis.net/gml" schemaLocation="..."/>
      <xsd:complexType name="stormsType">
        <xsd:complexContent>
          <xsd:extension base="gml:AbstractFeatureType">
            <xsd:sequence>
              <xsd:element name="start_time" type="xsd:dateTime" nillable="true"/>
              <xsd:element name="geom" type="gml:MultiPolygonPropertyType"/>
            </xsd:sequence>
          </xsd:extension>
        </xsd:complexContent>
      </xsd:complexType>
      <xsd:element name="storms" type="topp:stormsType" substitutionGroup="gml:_Feature"/>
    </xsd:schema>

The elements are found by their tag names, so whitespace
or additional nodes in between don't affect the parsing.
"""

from __future__ import annotations

import logging

from gisclient.exceptions import ParseError, SchemaMismatchError
from gisclient.parsers.xml import NSElement, xmlns
from gisclient.types import FeatureTypeSchema, FieldDescriptor

logger = logging.getLogger(__name__)

TYPE_SUFFIX = "Type"


def get_feature_type_name(complex_type_name: str) -> str:
    """Strip the conventional "Type" suffix of the complexType name."""
    return complex_type_name.removesuffix(TYPE_SUFFIX)


def read_feature_type_schema(root: NSElement, name: str) -> FeatureTypeSchema:
    """Extract the fields of a feature type from the ``DescribeFeatureType`` response.

    :param root: The parsed ``<xsd:schema>`` document.
    :param name: The feature type that was requested, without workspace prefix.
    """
    type_node = root.find_localname("complexType")
    if type_node is None or not type_node.get("name"):
        raise ParseError("Unable to parse DescribeFeatureType response: no named complexType found.")

    found_name = get_feature_type_name(type_node.attrib["name"])
    if found_name != name:
        raise SchemaMismatchError(expected=name, found=found_name)

    sequence = type_node.find_localname("sequence")
    if sequence is None:
        raise ParseError(
            f"Unable to parse DescribeFeatureType response: complexType '{found_name}'"
            " has no field sequence."
        )

    fields = [
        FieldDescriptor(name=element.get_str_attribute("name"), type=_get_element_type(element))
        for element in sequence.child_elements("element")
        if element in xmlns.xsd
    ]
    logger.debug("Feature type %s has fields: %s", name, ", ".join(f.name for f in fields))
    return FeatureTypeSchema(name, fields)


def _get_element_type(element: NSElement) -> str:
    """Tell the type of an element declaration.

    GeoServer writes string fields with a maximum length as an inline type:
    ``<xsd:element name=".."><xsd:simpleType><xsd:restriction base="xsd:string">``.
    """
    xsd_type = element.get("type")
    if xsd_type:
        return xsd_type

    restriction = element.find_localname("restriction")
    if restriction is not None and restriction.get("base"):
        return restriction.attrib["base"]

    raise ParseError(f"Element '{element.get('name')}' has no type declaration.")
