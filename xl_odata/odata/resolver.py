"""
xl_odata.odata.resolver - Entity set backed by a workbook table
================================================================

Serves "all entities" and "entity by key" for the one table this process
exposes. Column metadata is loaded once and kept; rows are read fresh on
every call.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple
import logging
import re

from xl_odata.core.errors import EntityNotFoundError, InvalidKeyError
from xl_odata.core.flight import SingleFlight
from xl_odata.odata.table import Column, Row, TableFetcher
from xl_odata.odata.translate import ODataEntity, translate

KEY_PATTERN = re.compile(r"[0-9]+")


class ColumnState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def parse_key(key: str) -> int:
    """
    Parse an entity key into a row ordinal.

    Raises
    ------
    InvalidKeyError
        Unless ``key`` consists of ASCII digits only
    """
    if not isinstance(key, str) or not KEY_PATTERN.fullmatch(key):
        raise InvalidKeyError(f"Invalid row id: {key!r}")
    return int(key)


class EntityResolver:
    """
    Entity access for one table.

    Column loading follows ``UNINITIALIZED -> LOADING -> READY``. A failed
    load ends in ``FAILED``, which is treated like ``UNINITIALIZED``: the
    next request that needs columns tries again. Only one thread loads at a
    time; the others wait for its result or re-raise its failure.

    Parameters
    ----------
    fetcher : TableFetcher
        Source of columns and rows
    load_on_init : bool
        Attempt the first column load during construction. Failures are
        logged and left for the next request to retry.

    Examples
    --------
    >>> resolver = EntityResolver(GraphTableFetcher(sess, "data.xlsx", "Table1"))
    >>> resolver.state
    <ColumnState.READY: 'ready'>
    >>> resolver.get_by_key("0").to_json()
    {'id': '0', 'Name': 'Ada', 'Email': 'ada@example.com'}
    """

    def __init__(self, fetcher: TableFetcher, *, load_on_init: bool = True) -> None:
        self.fetcher = fetcher
        self.logger = logging.getLogger("xl_odata.resolver")

        self._columns: Optional[Tuple[Column, ...]] = None
        self._state = ColumnState.UNINITIALIZED
        self._flight: SingleFlight[Tuple[Column, ...]] = SingleFlight()

        if load_on_init:
            try:
                self.ensure_columns()
            except Exception as e:
                self.logger.warning("Initial column load failed, will retry on next request: %s", e)

    @property
    def state(self) -> ColumnState:
        return self._state

    def reset(self) -> None:
        """Forget the loaded columns."""
        self._columns = None
        self._state = ColumnState.UNINITIALIZED

    # ---------------- columns ----------------

    def ensure_columns(self) -> Tuple[Column, ...]:
        """
        Return the table columns, loading them if not yet ready.

        Raises
        ------
        UpstreamAuthError, UpstreamDataError, ConfigurationError
            When loading fails; the resolver stays retryable
        """
        columns = self._columns
        if columns is not None:
            return columns

        return self._flight.run(self._load_columns)

    def _load_columns(self) -> Tuple[Column, ...]:
        if self._columns is not None:
            return self._columns

        self._state = ColumnState.LOADING
        try:
            loaded = tuple(self.fetcher.list_columns())
        except Exception:
            self._state = ColumnState.FAILED
            raise
        self._columns = loaded
        self._state = ColumnState.READY
        self.logger.info("Initialized %d columns", len(loaded))
        return loaded

    def columns(self) -> List[Column]:
        return list(self.ensure_columns())

    # ---------------- entities ----------------

    def list_rows(self) -> List[Row]:
        """Fetch the current rows; never cached."""
        return self.fetcher.list_rows()

    def list_all(self) -> List[ODataEntity]:
        """
        Read every row of the table as entities.

        Returns
        -------
        list of ODataEntity
            Current table contents in row order
        """
        columns = self.ensure_columns()
        rows = self.fetcher.list_rows()
        return translate(rows, columns)

    def get_by_key(self, key: str) -> ODataEntity:
        """
        Read a single entity by its key.

        Parameters
        ----------
        key : str
            Row ordinal as a decimal string, e.g. "2"

        Returns
        -------
        ODataEntity
            The entity for that row

        Raises
        ------
        InvalidKeyError
            If ``key`` is not a non-negative integer
        EntityNotFoundError
            If the table has no row at that ordinal
        """
        index = parse_key(key)
        columns = self.ensure_columns()

        row = self.fetcher.get_row(index)
        if row is None:
            raise EntityNotFoundError(f"Row with id {key} not found")

        entities = translate([row], columns)
        if not entities:
            raise EntityNotFoundError(f"Row with id {key} not found")
        return entities[0]
