"""
xl_odata.odata.table - Workbook table access
=============================================

Column/row records and the fetcher that reads them from an Excel table
through the Graph workbook API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union
from urllib.parse import quote
import logging

from xl_odata.core.errors import UpstreamDataError
from xl_odata.core.session import GraphSession

CellValue = Union[str, int, float, bool, None]

logger = logging.getLogger("xl_odata.graph")


@dataclass(frozen=True)
class Column:
    """
    A table column.

    Attributes
    ----------
    name : str
        Header text, used as the entity property name
    ordinal_position : int
        Zero-based position in the table schema
    """
    name: str
    ordinal_position: int


@dataclass(frozen=True)
class Row:
    """
    A table row: its zero-based index and one cell value per column.
    """
    ordinal_index: int
    values: Tuple[CellValue, ...]


class TableFetcher(Protocol):
    """What the resolver needs from the remote table."""

    def list_columns(self) -> List[Column]:
        ...

    def list_rows(self) -> List[Row]:
        ...

    def get_row(self, ordinal_index: int) -> Optional[Row]:
        ...


def parse_column(item: Dict[str, Any], position: int) -> Column:
    """Build a Column from a Graph ``workbookTableColumn`` resource."""
    index = item.get("index")
    return Column(
        name=str(item.get("name") or ""),
        ordinal_position=int(index) if index is not None else position,
    )


def parse_row(item: Dict[str, Any], position: int) -> Row:
    """
    Build a Row from a Graph ``workbookTableRow`` resource.

    Graph returns ``values`` as a one-row matrix (``[[v0, v1, ...]]``);
    a flat list is accepted too.
    """
    raw = item.get("values") or []
    if raw and isinstance(raw[0], list):
        raw = raw[0]
    index = item.get("index")
    return Row(
        ordinal_index=int(index) if index is not None else position,
        values=tuple(raw),
    )


def _is_missing_row(err: UpstreamDataError) -> bool:
    if err.status == 404 or "ItemNotFound" in err.body:
        return True
    # itemAt answers an out-of-range index with InvalidArgument
    return err.status == 400 and "InvalidArgument" in err.body


class GraphTableFetcher:
    """
    Reads one named table of one workbook.

    Parameters
    ----------
    sess : GraphSession
        Authenticated Graph session
    file_path : str
        Workbook path inside the drive, e.g. "Documents/data.xlsx"
    table_name : str
        Excel table name, e.g. "Table1"
    drive_path : str
        Drive resource path relative to the Graph root

    Examples
    --------
    >>> fetcher = GraphTableFetcher(sess, "Documents/data.xlsx", "Table1")
    >>> [c.name for c in fetcher.list_columns()]
    ['Name', 'Email', 'Phone']
    """

    def __init__(
        self,
        sess: GraphSession,
        file_path: str,
        table_name: str,
        *,
        drive_path: str = "sites/root/drive",
    ) -> None:
        self.sess = sess
        self.file_path = file_path
        self.table_name = table_name
        self.drive_path = drive_path.strip("/")

    @property
    def table_path(self) -> str:
        return (
            f"{self.drive_path}/root:/{quote(self.file_path.strip('/'), safe='/')}:"
            f"/workbook/tables/{quote(self.table_name, safe='')}"
        )

    def list_columns(self) -> List[Column]:
        items = self.sess.get_all(f"{self.table_path}/columns")
        logger.info("Fetched %d columns of table %s", len(items), self.table_name)
        return [parse_column(item, i) for i, item in enumerate(items)]

    def list_rows(self) -> List[Row]:
        items = self.sess.get_all(f"{self.table_path}/rows")
        logger.info("Fetched %d rows of table %s", len(items), self.table_name)
        return [parse_row(item, i) for i, item in enumerate(items)]

    def get_row(self, ordinal_index: int) -> Optional[Row]:
        """
        Fetch the row at ``ordinal_index``.

        Returns
        -------
        Row or None
            None when the table has no row at that index
        """
        try:
            item = self.sess.get(f"{self.table_path}/rows/itemAt(index={int(ordinal_index)})")
        except UpstreamDataError as e:
            if _is_missing_row(e):
                return None
            raise
        return parse_row(item, ordinal_index)

