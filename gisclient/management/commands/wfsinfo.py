"""Quick utility to inspect a WFS layer from the command line."""

from __future__ import annotations

import asyncio
from argparse import ArgumentTypeError

import orjson
from django.core.management import BaseCommand, CommandError, CommandParser

from gisclient import conf
from gisclient.exceptions import WFSClientError
from gisclient.service import WebFeatureService
from gisclient.types import FeatureTypeSchema


def _parse_filter(value):
    key, _, filter_value = value.partition("=")
    if not key or not filter_value:
        raise ArgumentTypeError("Expect KEY=VALUE format, e.g. cql_filter=name='foo'")
    return key, filter_value


class Command(BaseCommand):
    """Show the schema, time extent and features of a WFS layer."""

    help = (
        "Show the fields of a WFS layer, and optionally its time extent and features."
        " This can be done using:"
        "  manage.py wfsinfo --workspace=topp --time-field=start_time --features storms"
    )

    def add_arguments(self, parser: CommandParser):
        parser.add_argument(
            "--url",
            default=None,
            help=f"GeoServer URL, defaults to the GISCLIENT_WFS_URL setting ({conf.GISCLIENT_WFS_URL}).",
        )
        parser.add_argument(
            "-w",
            "--workspace",
            required=True,
            help="The workspace (namespace prefix) of the layer.",
        )
        parser.add_argument(
            "-t",
            "--time-field",
            metavar="NAME",
            help="Show the minimum and maximum value of this field.",
        )
        parser.add_argument(
            "--features",
            action="store_true",
            help="Print the features as GeoJSON (without geometry).",
        )
        parser.add_argument(
            "-f",
            "--filter",
            action="append",
            dest="filters",
            type=_parse_filter,
            metavar="KEY=VALUE",
            help="Additional WFS parameters for the features, e.g. cql_filter=...",
        )
        parser.add_argument(
            "-n",
            "--max-features",
            type=int,
            default=10,
            help="The maximum number of features to print (default: 10).",
        )
        parser.add_argument("layer", help="The layer name, without workspace prefix.")

    def handle(self, *args, **options):
        try:
            asyncio.run(self._handle(options))
        except WFSClientError as e:
            raise CommandError(str(e)) from e

    async def _handle(self, options):
        name = options["layer"]
        workspace = options["workspace"]
        filters = dict(options["filters"] or ())

        async with WebFeatureService(options["url"]) as wfs:
            schema = await wfs.extract_fields_and_types(name, workspace)
            self._write_schema(schema)

            if time_field := options["time_field"]:
                if time_field not in schema:
                    raise CommandError(f"Layer '{name}' has no field '{time_field}'.")
                time_min, time_max = await asyncio.gather(
                    wfs.find_time_min(name, workspace, time_field),
                    wfs.find_time_max(name, workspace, time_field),
                )
                self.stdout.write(f"Time extent of {time_field}: {time_min} / {time_max}")

            if options["features"]:
                collection = await wfs.get_filtered_json_features(
                    name, workspace, schema, filters, {"maxFeatures": options["max_features"]}
                )
                if not collection.features:
                    self.stdout.write(self.style.NOTICE("No features found"))
                else:
                    self.stdout.write(
                        orjson.dumps(collection.as_dict(), option=orjson.OPT_INDENT_2).decode()
                    )

    def _write_schema(self, schema: FeatureTypeSchema):
        self.stdout.write(f"Fields of {schema.type_name}:")
        for field in schema:
            suffix = " (geometry)" if field.is_geometry(conf.GISCLIENT_GEOMETRY_TYPE_MARKER) else ""
            self.stdout.write(f"  {field.name}: {field.type}{suffix}")
