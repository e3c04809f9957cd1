"""All parser logic to process the XML responses of the WFS server.

This handles the documents of:

* ``DescribeFeatureType`` (an XML Schema, see :mod:`gisclient.parsers.schema`)
* ``GetFeature`` (a GML feature collection, see :mod:`gisclient.parsers.features`)

The XML is parsed into :class:`~gisclient.parsers.xml.NSElement` objects,
which keep track of the namespace prefixes the server used.
"""
