#!/usr/bin/env python3
"""
Basic usage examples for the xl_odata package.

Reads Graph credentials from SHAREPOINT_TENANT_ID, SHAREPOINT_CLIENT_ID and
SHAREPOINT_CLIENT_SECRET.
"""

import os

from xl_odata import ConnectionContext, EntityResolver
from xl_odata.odata import build_metadata_xml

FILE_PATH = os.environ.get("EXCEL_FILE_PATH", "Documents/data.xlsx")
TABLE_NAME = os.environ.get("EXCEL_TABLE_NAME", "Table1")


def example_read_table():
    """Read columns and rows of a workbook table directly."""
    with ConnectionContext() as conn:
        table = conn.get_table(FILE_PATH, TABLE_NAME)

        columns = table.list_columns()
        print("Columns:", [c.name for c in columns])

        rows = table.list_rows()
        print(f"{len(rows)} rows")
        for row in rows[:3]:
            print(row.ordinal_index, row.values)


def example_entities():
    """Read the table as OData entities."""
    with ConnectionContext() as conn:
        resolver = EntityResolver(conn.get_table(FILE_PATH, TABLE_NAME))
        print("Column state:", resolver.state.value)

        for entity in resolver.list_all()[:3]:
            print(entity.to_json())

        print(resolver.get_by_key("0").to_json())


def example_metadata():
    """Print the $metadata document the gateway would serve."""
    with ConnectionContext() as conn:
        resolver = EntityResolver(conn.get_table(FILE_PATH, TABLE_NAME))
        print(build_metadata_xml(resolver.columns(), sample_rows=resolver.list_rows()))


if __name__ == "__main__":
    print("=" * 60)
    print("Table access")
    print("=" * 60)
    example_read_table()

    print("\n" + "=" * 60)
    print("Entities")
    print("=" * 60)
    example_entities()

    print("\n" + "=" * 60)
    print("Metadata")
    print("=" * 60)
    example_metadata()
