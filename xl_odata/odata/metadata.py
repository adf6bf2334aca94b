"""
xl_odata.odata.metadata - OData V4 $metadata generation
========================================================

Builds a CSDL document describing the single entity set served by the
gateway. The schema is only known at runtime: one open entity type keyed
by ``id`` with one property per discovered column.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence
import xml.etree.ElementTree as ET

from xl_odata.odata.table import CellValue, Column, Row

EDMX_NS = "http://docs.oasis-open.org/odata/ns/edmx"
EDM_NS = "http://docs.oasis-open.org/odata/ns/edm"

EDM_STRING = "Edm.String"
EDM_BOOLEAN = "Edm.Boolean"
EDM_INT64 = "Edm.Int64"
EDM_DOUBLE = "Edm.Double"


def edm_type_of(value: CellValue) -> Optional[str]:
    """
    Map a cell value to its EDM primitive type.

    Empty cells (None or "") carry no type information and return None.
    """
    if value is None or value == "":
        return None
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return EDM_BOOLEAN
    if isinstance(value, int):
        return EDM_INT64
    if isinstance(value, float):
        return EDM_DOUBLE
    return EDM_STRING


def infer_column_types(
    columns: Sequence[Column],
    rows: Iterable[Row] = (),
) -> Dict[str, str]:
    """
    Infer one EDM type per column from sample rows.

    A column whose non-empty values all share a type gets that type;
    int and float together widen to ``Edm.Double``; anything else, or no
    values at all, is ``Edm.String``.
    """
    seen: Dict[str, set] = {c.name: set() for c in columns}
    for row in rows:
        for col in columns:
            if col.ordinal_position < len(row.values):
                t = edm_type_of(row.values[col.ordinal_position])
                if t:
                    seen[col.name].add(t)

    out: Dict[str, str] = {}
    for col in columns:
        types = seen[col.name]
        if len(types) == 1:
            out[col.name] = next(iter(types))
        elif types == {EDM_INT64, EDM_DOUBLE}:
            out[col.name] = EDM_DOUBLE
        else:
            out[col.name] = EDM_STRING
    return out


def build_metadata_xml(
    columns: Sequence[Column],
    *,
    namespace: str = "ExcelService",
    entity_type: str = "ExcelRow",
    entity_set: str = "ExcelRow",
    sample_rows: Iterable[Row] = (),
) -> str:
    """
    Render the service's CSDL $metadata document.

    Parameters
    ----------
    columns : sequence of Column
        Discovered table columns
    namespace : str
        Schema namespace
    entity_type : str
        Entity type name
    entity_set : str
        Entity set name exposed in the container
    sample_rows : iterable of Row
        Rows used to infer property types

    Returns
    -------
    str
        XML document, UTF-8 declared
    """
    types = infer_column_types(columns, sample_rows)

    root = ET.Element("edmx:Edmx", {"xmlns:edmx": EDMX_NS, "Version": "4.0"})
    services = ET.SubElement(root, "edmx:DataServices")
    schema = ET.SubElement(services, "Schema", {"xmlns": EDM_NS, "Namespace": namespace})

    et = ET.SubElement(schema, "EntityType", {"Name": entity_type, "OpenType": "true"})
    key = ET.SubElement(et, "Key")
    ET.SubElement(key, "PropertyRef", {"Name": "id"})
    ET.SubElement(et, "Property", {"Name": "id", "Type": EDM_STRING, "Nullable": "false"})

    declared: List[str] = ["id"]
    for col in columns:
        if not col.name or col.name in declared:
            continue
        declared.append(col.name)
        ET.SubElement(et, "Property", {"Name": col.name, "Type": types[col.name]})

    container = ET.SubElement(schema, "EntityContainer", {"Name": "Container"})
    ET.SubElement(
        container,
        "EntitySet",
        {"Name": entity_set, "EntityType": f"{namespace}.{entity_type}"},
    )

    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="utf-8"?>\n' + body
