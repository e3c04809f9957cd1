"""XML parsing for all WFS responses.

This logic uses the etree logic from the standard library,
with some extra extensions to expose the original namespace aliases.
Using defusedxml, malicious documents (e.g. entity expansion) are rejected.

WFS servers are free to choose their namespace prefixes, and GeoServer
uses the workspace name as prefix for the feature data. Hence, most lookups
here happen by local name, while the prefix is still available for checks.
"""

from __future__ import annotations

import logging
import typing
from collections.abc import Iterator
from enum import Enum
from xml.etree.ElementTree import Element, TreeBuilder

from defusedxml.ElementTree import DefusedXMLParser, ParseError

from gisclient.exceptions import ExternalParsingError

logger = logging.getLogger(__name__)

__all__ = (
    "xmlns",
    "NSElement",
    "parse_xml_from_string",
    "split_ns",
)


class xmlns(Enum):
    """Common namespaces within WFS land.
    Note these short aliases are arbitrary in XML syntax; the XML code may use any alias (such as ns0).
    The full qualified name (e.g. ``<{http://www.opengis.net/gml}featureMembers>``) is the actual tag name.
    """

    # XML standard
    xsd = "http://www.w3.org/2001/XMLSchema"
    xsi = "http://www.w3.org/2001/XMLSchema-instance"

    # APIs by the Open Geospatial Consortium (OGC)
    ows10 = "http://www.opengis.net/ows"  # OGC Web Service (OWS) 1.0, used by WFS 1.1.0
    wfs1 = "http://www.opengis.net/wfs"  # Web Feature Service (WFS) 1.x
    gml21 = "http://www.opengis.net/gml"  # GML 2 and 3.1.1 (WFS 1.x)
    gml32 = "http://www.opengis.net/gml/3.2"

    # Internal aliases
    ows = ows10
    wfs = wfs1
    gml = gml21
    xs = xsd  # commonly used

    @classmethod
    def gml_namespaces(cls) -> tuple[xmlns, ...]:
        """All GML versions a feature identifier may be written in."""
        return (cls.gml21, cls.gml32)

    def __str__(self):
        # Python 3.11+ has StrEnum for this.
        return self.value

    def qname(self, local_name) -> str:
        """Convert the tag name into a fully qualified name."""
        return f"{{{self.value}}}{local_name}"  # same as QName(..).text

    def __contains__(self, tag: NSElement | str) -> bool:
        """Tell whether a given tag exists in this namespace"""
        if isinstance(tag, NSElement):
            tag = tag.tag
        elif not isinstance(tag, str):
            return False
        return tag.startswith(f"{{{self.value}}}")


class NSElement(Element):
    """Custom XML element, which also exposes its original namespace aliases.
    That information is needed to tell which prefix the server used for an element,
    e.g. ``<topp:start_time>`` where ``topp`` is the workspace name.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.ns_aliases = {}  # assigned by NSTreeBuilder, in {prefix: uri} format.

    @property
    def localname(self) -> str:
        """The tag name without its namespace."""
        return split_ns(self.tag)[1]

    @property
    def qname(self) -> str:
        """Provde the tag name in its original short format"""
        ns, localname = split_ns(self.tag)
        if ns and self.ns_aliases.get("") != ns:
            for prefix, full_ns in self.ns_aliases.items():
                if full_ns == ns:
                    return f"{prefix}:{localname}" if prefix else localname
        return localname

    def has_prefix(self, prefix: str) -> bool:
        """Tell whether the element is written in the namespace that the prefix declares.
        Elements in the default namespace (``xmlns="..."``) are seen as unprefixed,
        even when a prefix is bound to the same namespace.
        """
        ns = split_ns(self.tag)[0]
        if ns is None or self.ns_aliases.get("") == ns:
            return False
        return self.ns_aliases.get(prefix) == ns

    @property
    def text_content(self) -> str:
        """All text of this element and its children, like the DOM ``textContent``."""
        return "".join(self.itertext())

    def get_str_attribute(self, name: str) -> str:
        """Resolve an attribute, raise an error when it's missing."""
        try:
            return self.attrib[name]
        except KeyError:
            raise ExternalParsingError(
                f"Element {self.tag} misses required attribute '{name}'"
            ) from None

    def iter_localname(self, localname: str) -> Iterator[NSElement]:
        """Find all descendants with the given local name, in any namespace.
        This includes the element itself, like :meth:`iter` does.
        """
        for element in self.iter():
            if split_ns(element.tag)[1] == localname:
                yield element

    def find_localname(self, localname: str) -> NSElement | None:
        """Find the first descendant with the given local name, in any namespace."""
        return next(self.iter_localname(localname), None)

    def child_elements(self, localname: str | None = None) -> list[NSElement]:
        """Return the direct child elements, optionally only those with a given local name.
        Text between elements is never part of this (etree stores it as ``.tail``).
        """
        if localname is None:
            return list(self)
        return [child for child in self if split_ns(child.tag)[1] == localname]

    if typing.TYPE_CHECKING:
        # Make sure the type checking knows the actual type of the elements.
        def find(self, path: str, namespaces: dict[str, str] | None = None) -> NSElement | None:
            return super().find(path, namespaces)

        def findall(self, path: str, namespaces: dict[str, str] | None = None) -> list[NSElement]:
            return super().findall(path, namespaces)

        def iter(self, tag: str | None = None) -> Iterator[NSElement]:
            return super().iter(tag)

        def __iter__(self) -> Iterator[NSElement]:
            return super().__iter__()


class NSTreeBuilder(TreeBuilder):
    """Custom TreeBuilder to track namespaces."""

    def __init__(self, **kwargs):
        super().__init__(element_factory=NSElement, **kwargs)
        # A new stack level is added directly, as start_ns() is called before start()
        self.ns_stack = [{}]

    def start(self, tag, attrs):
        super().start(tag, attrs)
        self.ns_stack.append({})  # reserve stack for child tags

    def start_ns(self, prefix, uri):
        self.ns_stack[-1][prefix] = uri

    def end(self, tag) -> Element:
        element = super().end(tag)
        self.ns_stack.pop()  # clear reservation for child tags
        element.ns_aliases = self._flatten_ns()
        self.ns_stack[-1] = {}  # declarations of this element don't apply to its siblings
        return element

    def _flatten_ns(self) -> dict:
        result = {}
        for level in self.ns_stack:
            result.update(level)
        return result


def parse_xml_from_string(xml_string: str | bytes) -> NSElement:
    """Provide a safe and consistent way for parsing XML.

    This uses a custom parser, so namespace aliases can be tracked.
    All elements also have an :attr:`ns_aliases` attribute that exposes
    the original alias that was used for the namespace.
    """
    # Passing a custom parser potentially circumvents defusedxml,
    # so note the parser is again configured in the same way:
    parser = DefusedXMLParser(
        target=NSTreeBuilder(),
        forbid_dtd=True,
        forbid_entities=True,
        forbid_external=True,
    )

    # Not allowing DTD, do a primitive strip, and allow parsing to fail if it was mangled.
    if isinstance(xml_string, str) and xml_string.startswith("<?"):
        xml_string = xml_string[xml_string.find("?>") + 2 :]

    try:
        parser.feed(xml_string)
        return parser.close()
    except ParseError as e:
        # Offer consistent results for callers to check for invalid data.
        logger.debug("Parsing XML error: %s: %s", e, xml_string)
        raise ExternalParsingError(str(e)) from e


def split_ns(xml_name: str) -> tuple[str | None, str]:
    """Split the element tag or attribute name into the namespace and
    local name. The stdlib etree doesn't have the properties for this (lxml does).
    """
    # Tags may start with a `{ns}`
    if xml_name.startswith("{"):
        end = xml_name.index("}")
        return xml_name[1:end], xml_name[end + 1 :]
    else:
        return None, xml_name
