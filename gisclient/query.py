"""Composing the Key-Value-Pair (KVP) parameters of WFS requests."""

from __future__ import annotations

from enum import Enum

from gisclient import conf


class SortOrder(Enum):
    """The WFS 1.1 sorting directions for the ``sortby`` parameter."""

    #: Ascending order
    ASC = "A"
    #: Descending order
    DESC = "D"

    @classmethod
    def from_string(cls, direction: str) -> SortOrder:
        """Accept both the WFS 1 notation (A/D) and the WFS 2 notation (ASC/DESC)."""
        direction = direction.upper()
        try:
            return cls(direction)
        except ValueError:
            try:
                return cls[direction]
            except KeyError:
                raise ValueError(
                    f"Expect A/D or ASC/DESC ordering direction, not '{direction}'"
                ) from None


def get_type_name(name: str, workspace: str) -> str:
    """Tell how GeoServer addresses a layer within a workspace."""
    return f"{workspace}:{name}"


def get_sort_by(field: str, direction: str | SortOrder) -> str:
    """Provide the ``sortby`` value, e.g. ``start_time D``."""
    if not isinstance(direction, SortOrder):
        direction = SortOrder.from_string(direction)
    return f"{field} {direction.value}"


def build_query(operation: str, type_name: str, overrides: dict | None = None) -> dict:
    """Compose the parameters of a WFS request.

    :param operation: The WFS request, e.g. ``GetFeature``.
    :param type_name: The layer, in the ``workspace:name`` format.
    :param overrides: Additional parameters. These take precedence over the defaults.
    """
    return {
        "version": conf.GISCLIENT_WFS_VERSION,
        "request": operation,
        "typeName": type_name,
        **(overrides or {}),
    }
