"""Reading the GML of a ``GetFeature`` response.

A WFS 1.1 response with GML 3.1.1 output looks like:

.. code-block:: xml

    <wfs:FeatureCollection xmlns:topp="http://www.openplans.org/topp" ...>
      <gml:featureMembers>
        <topp:storms gml:id="storms.1">
          <topp:start_time>2020-01-01T00:00:00Z</topp:start_time>
          <topp:geom><gml:MultiSurface>...</gml:MultiSurface></topp:geom>
        </topp:storms>
      </gml:featureMembers>
    </wfs:FeatureCollection>

The feature elements use the workspace as namespace prefix.
"""

from __future__ import annotations

from collections.abc import Collection

from gisclient.exceptions import ExternalParsingError, FieldNotFoundError, PrefixMismatchError
from gisclient.parsers.xml import NSElement, xmlns
from gisclient.types import Feature, FeatureCollection

FEATURE_MEMBERS = "featureMembers"


def read_feature_collection(root: NSElement, allowed_fields: Collection[str]) -> FeatureCollection:
    """Convert the GML document into a feature collection.

    :param root: The parsed ``<wfs:FeatureCollection>`` document.
    :param allowed_fields: The elements to include as properties, typically all non-geometry fields.
    :raises ExternalParsingError: When the document doesn't have a single ``<gml:featureMembers>``.
    """
    containers = list(root.iter_localname(FEATURE_MEMBERS))
    if len(containers) != 1:
        raise ExternalParsingError(
            f"Expected a single <{FEATURE_MEMBERS}> element, found {len(containers)}."
        )

    allowed_fields = set(allowed_fields)
    return FeatureCollection(
        features=[_read_feature(member, allowed_fields) for member in containers[0]]
    )


def _read_feature(member: NSElement, allowed_fields: set[str]) -> Feature:
    properties = {}
    for child in member:
        # When an element occurs twice, the last one is kept.
        if child.localname in allowed_fields:
            properties[child.localname] = child.text_content

    return Feature(id=get_feature_id(member), properties=properties)


def get_feature_id(member: NSElement) -> str:
    """Read the ``gml:id`` attribute of a feature, or the ``fid`` attribute of GML 2."""
    for namespace in xmlns.gml_namespaces():
        feature_id = member.get(namespace.qname("id"))
        if feature_id is not None:
            return feature_id

    feature_id = member.get("fid")
    if feature_id is None:
        raise ExternalParsingError(f"Feature element <{member.qname}> has no gml:id attribute.")
    return feature_id


def read_field_value(root: NSElement, field: str, workspace: str) -> str:
    """Find the text of a field in the GetFeature response.

    Elements from other namespaces may have the same local name,
    so only the elements that use the workspace as prefix are considered.
    When the document has multiple matches, the last one is returned.
    """
    nodes = list(root.iter_localname(field))
    if not nodes:
        raise FieldNotFoundError(
            f"Unable to find value of expected field: {field}."
            " This is likely a result of layer having no records.",
            field=field,
        )

    value = None
    for node in nodes:
        if node.has_prefix(workspace):
            value = node.text_content

    if value is None:
        found = ", ".join(sorted({node.qname for node in nodes}))
        raise PrefixMismatchError(
            f"Unable to find field '{workspace}:{field}' in GetFeature response, found: {found}.",
            field=field,
        )
    return value
