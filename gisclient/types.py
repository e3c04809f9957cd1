"""The data types that the WFS client produces.

The schema of a feature type is described by :class:`FeatureTypeSchema`,
which holds a :class:`FieldDescriptor` for each element in the ``DescribeFeatureType`` response.

The feature data is returned as a :class:`FeatureCollection`, which follows the GeoJSON layout
so it can be passed directly to mapping libraries. Geometry data is not included;
all property values are the raw text of the GML document.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import orjson

from gisclient.exceptions import ParseError

__all__ = (
    "FieldDescriptor",
    "FeatureTypeSchema",
    "Feature",
    "FeatureCollection",
)


@dataclass(frozen=True)
class FieldDescriptor:
    """A single field of a feature type, as declared by ``<xsd:element name=".." type="..">``."""

    #: The field name, which is also the local name of the element in GetFeature responses.
    name: str

    #: The namespace-qualified type, as written in the document (e.g. ``xsd:dateTime``).
    type: str

    def is_geometry(self, marker: str) -> bool:
        """Tell whether the field holds geometry data.
        This is a plain text check, as GeoServer declares all geometry with a GML type
        (e.g. ``gml:MultiPolygonPropertyType``).
        """
        return marker in self.type


class FeatureTypeSchema:
    """The ordered fields of a feature type.

    The field order is the declaration order of the ``DescribeFeatureType`` response.
    """

    def __init__(self, type_name: str, fields: Iterable[FieldDescriptor]):
        self.type_name = type_name
        self.fields = tuple(fields)
        self._by_name = {}
        for field_descriptor in self.fields:
            if field_descriptor.name in self._by_name:
                raise ParseError(
                    f"Field '{field_descriptor.name}' is declared twice in '{type_name}'."
                )
            self._by_name[field_descriptor.name] = field_descriptor

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.type_name} {list(self.names)!r}>"

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def __len__(self):
        return len(self.fields)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> FieldDescriptor:
        return self._by_name[name]

    def __eq__(self, other):
        if isinstance(other, FeatureTypeSchema):
            return self.type_name == other.type_name and self.fields == other.fields
        return NotImplemented

    @property
    def names(self) -> tuple[str, ...]:
        """The names of all fields."""
        return tuple(self._by_name)

    def get_non_geometry_names(self, marker: str) -> list[str]:
        """Tell which fields can be exposed as GeoJSON properties."""
        return [f.name for f in self.fields if not f.is_geometry(marker)]


@dataclass
class Feature:
    """A single feature, without its geometry."""

    #: The identifier, e.g. ``layer.1`` (from the ``gml:id`` attribute).
    id: str
    properties: dict[str, str] = field(default_factory=dict)

    type = "Feature"

    def as_dict(self) -> dict:
        return {"type": self.type, "id": self.id, "properties": self.properties}


@dataclass
class FeatureCollection:
    """The features of a GetFeature response, in the order of the document.
    An empty collection means no records matched the query.
    """

    features: list[Feature] = field(default_factory=list)

    type = "FeatureCollection"

    def __len__(self):
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def as_dict(self) -> dict:
        """Provide the GeoJSON structure."""
        return {
            "type": self.type,
            "features": [feature.as_dict() for feature in self.features],
        }

    def to_json(self) -> bytes:
        """Serialize the collection as GeoJSON."""
        return orjson.dumps(self.as_dict())
