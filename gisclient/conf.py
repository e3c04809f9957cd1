from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

_originals = {}

# -- server connection

# The GeoServer base URL. The "/wfs" endpoint is appended when it's not part of the URL.
GISCLIENT_WFS_URL = getattr(settings, "GISCLIENT_WFS_URL", "http://localhost:8080/geoserver")

# Using WFS 1.1.0, as 2.0.0 always runs a full table scan to count the number of matched features.
GISCLIENT_WFS_VERSION = getattr(settings, "GISCLIENT_WFS_VERSION", "1.1.0")

# The GeoJSON output of GeoServer also includes the feature count, so GML is parsed instead.
GISCLIENT_WFS_OUTPUT_FORMAT = getattr(
    settings, "GISCLIENT_WFS_OUTPUT_FORMAT", "text/xml; subtype=gml/3.1.1"
)

# Timeout in seconds for each HTTP request.
GISCLIENT_REQUEST_TIMEOUT = getattr(settings, "GISCLIENT_REQUEST_TIMEOUT", 60)

# -- response parsing

# Fields whose XSD type contains this text are treated as geometry, and excluded from properties.
GISCLIENT_GEOMETRY_TYPE_MARKER = getattr(settings, "GISCLIENT_GEOMETRY_TYPE_MARKER", "gml:")

# -- caching

# Number of GetFeature responses to keep in memory. Use 0 to disable the cache.
GISCLIENT_GET_FEATURE_CACHE_SIZE = getattr(settings, "GISCLIENT_GET_FEATURE_CACHE_SIZE", 200)


@receiver(setting_changed)
def _on_settings_change(setting, value, enter, **kwargs):
    if not setting.startswith("GISCLIENT_"):
        return

    conf_module = globals()
    if value is None and not enter:
        # override_settings().disable() returns what the django settings module had.
        # Revert to our defaults here instead.
        value = _originals.get(setting)
    else:
        # Track defaults of this file for reverting to them
        _originals.setdefault(setting, conf_module[setting])

    conf_module[setting] = value
