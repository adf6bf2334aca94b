"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import Mock
from typing import Any, Dict, List, Optional

from xl_odata.core.errors import UpstreamDataError
from xl_odata.core.token import GraphCredentials
from xl_odata.odata.table import Column, Row


class FakeFetcher:
    """In-memory table standing in for the Graph workbook API."""

    def __init__(self, columns, rows, column_failures=0):
        self.columns = list(columns)
        self.rows = list(rows)
        self.column_failures = column_failures
        self.column_calls = 0
        self.row_calls = 0

    def list_columns(self) -> List[Column]:
        self.column_calls += 1
        if self.column_failures > 0:
            self.column_failures -= 1
            raise UpstreamDataError(503, "Service unavailable", "https://graph.test/columns")
        return list(self.columns)

    def list_rows(self) -> List[Row]:
        self.row_calls += 1
        return list(self.rows)

    def get_row(self, ordinal_index: int) -> Optional[Row]:
        for row in self.rows:
            if row.ordinal_index == ordinal_index:
                return row
        return None


def make_response(status: int = 200, payload: Any = None, text: str = "", headers=None):
    """Build a mock requests.Response."""
    r = Mock()
    r.status_code = status
    r.headers = headers or {"Content-Type": "application/json"}
    if payload is None:
        r.json.side_effect = ValueError("No JSON")
        r.text = text
    else:
        r.json.return_value = payload
        r.text = text or str(payload)
    return r


@pytest.fixture
def credentials():
    return GraphCredentials("tenant-123", "client-456", "s3cret")


@pytest.fixture
def abc_columns():
    return [Column("A", 0), Column("B", 1), Column("C", 2)]


@pytest.fixture
def abc_rows():
    return [
        Row(0, (1, 2, 3)),
        Row(1, (4, 5, 6)),
        Row(2, (7, 8, 9)),
    ]


@pytest.fixture
def make_fetcher(abc_columns, abc_rows):
    """Factory for FakeFetcher, defaulting to the A/B/C table."""
    def _make(columns=None, rows=None, column_failures=0):
        return FakeFetcher(
            abc_columns if columns is None else columns,
            abc_rows if rows is None else rows,
            column_failures=column_failures,
        )
    return _make


@pytest.fixture
def sample_graph_columns() -> Dict[str, Any]:
    """Graph workbookTableColumn collection."""
    return {
        "value": [
            {"id": "1", "index": 0, "name": "Name"},
            {"id": "2", "index": 1, "name": "Email"},
            {"id": "3", "index": 2, "name": "Active"},
        ]
    }


@pytest.fixture
def sample_graph_rows() -> Dict[str, Any]:
    """Graph workbookTableRow collection."""
    return {
        "value": [
            {"index": 0, "values": [["Ada", "ada@example.com", True]]},
            {"index": 1, "values": [["Grace", "grace@example.com", False]]},
        ]
    }
