"""
xl_odata.odata.translate - Rows to OData entities
==================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from xl_odata.odata.table import CellValue, Column, Row


@dataclass
class ODataEntity:
    """
    One table row exposed as an OData entity.

    Attributes
    ----------
    id : str
        Decimal string of the row's ordinal index. Derived from row order,
        so it only identifies the same row while that order is unchanged.
    fields : dict
        Column name to cell value, in column order
    """
    id: str
    fields: Dict[str, CellValue] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id}
        for name, value in self.fields.items():
            # the synthetic key wins over a column named "id"
            if name != "id":
                out[name] = value
        return out


def translate(rows: Sequence[Row], columns: Sequence[Column]) -> List[ODataEntity]:
    """
    Convert table rows into OData entities.

    Each column whose ordinal position is present in a row's values becomes
    a field of that row's entity. Rows shorter than the column list are
    tolerated: their trailing columns are left out.

    Parameters
    ----------
    rows : sequence of Row
        Rows in table order
    columns : sequence of Column
        Columns in schema order

    Returns
    -------
    list of ODataEntity
        One entity per row, in row order

    Examples
    --------
    >>> cols = [Column("A", 0), Column("B", 1)]
    >>> [e.to_json() for e in translate([Row(0, (1, 2)), Row(1, (3,))], cols)]
    [{'id': '0', 'A': 1, 'B': 2}, {'id': '1', 'A': 3}]
    """
    entities: List[ODataEntity] = []
    for row in rows:
        entity = ODataEntity(id=str(row.ordinal_index))
        for col in columns:
            if 0 <= col.ordinal_position < len(row.values):
                entity.fields[col.name] = row.values[col.ordinal_position]
        entities.append(entity)
    return entities
