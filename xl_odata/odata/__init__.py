"""
xl_odata.odata - Table to OData entity layer
=============================================

- Column, Row, GraphTableFetcher: Workbook table records and their reader
- translate, ODataEntity: Positional rows to keyed entities
- EntityResolver: "all entities" / "entity by key" over one table
- build_metadata_xml: CSDL $metadata from discovered columns

"""

from xl_odata.odata.table import CellValue, Column, Row, TableFetcher, GraphTableFetcher
from xl_odata.odata.translate import ODataEntity, translate
from xl_odata.odata.resolver import ColumnState, EntityResolver, parse_key
from xl_odata.odata.metadata import build_metadata_xml, infer_column_types

__all__ = [
    "CellValue",
    "Column",
    "Row",
    "TableFetcher",
    "GraphTableFetcher",
    "ODataEntity",
    "translate",
    "ColumnState",
    "EntityResolver",
    "parse_key",
    "build_metadata_xml",
    "infer_column_types",
]
