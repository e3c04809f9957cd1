"""Exceptions raised by the WFS client operations.

All errors inherit from :class:`WFSClientError`, so callers can handle
any failure of a WFS operation in a single ``except`` clause.

Note that not every failure becomes an exception:
:meth:`~gisclient.service.WebFeatureService.get_features_as_json` returns an empty
collection for unreadable feature documents, and
:meth:`~gisclient.service.WebFeatureService.is_data_present` returns ``False``.
"""

from __future__ import annotations


class WFSClientError(Exception):
    """Base class for all errors of the WFS client."""


class TransportError(WFSClientError):
    """The HTTP request to the WFS server failed."""

    def __init__(self, message, reason=None):
        super().__init__(message)
        self.reason = reason


class RemoteServiceError(TransportError):
    """The WFS server answered with an ``<ows:ExceptionReport>``."""

    def __init__(self, text, code=None, locator=None):
        message = f"{code}: {text}" if code else text
        if locator:
            message = f"{message} (locator: {locator})"
        super().__init__(message, reason=text)
        self.text = text
        self.code = code
        self.locator = locator


class EmptyResponseError(WFSClientError):
    """The server returned no document where one was expected."""


class ParseError(WFSClientError):
    """The document doesn't have the expected structure."""


class ExternalParsingError(ParseError):
    """The XML document could not be read, or misses a required part."""


class SchemaMismatchError(ParseError):
    """The DescribeFeatureType response describes a different feature type."""

    def __init__(self, expected, found):
        super().__init__(
            f"DescribeFeatureType response describes '{found}', expected '{expected}'."
        )
        self.expected = expected
        self.found = found


class FieldLookupError(WFSClientError):
    """The value of a field could not be found in the GetFeature response."""

    def __init__(self, message, field):
        super().__init__(message)
        self.field = field


class FieldNotFoundError(FieldLookupError):
    """No element exists for the field at all."""


class PrefixMismatchError(FieldLookupError):
    """Elements exist for the field, but not within the expected workspace prefix."""
