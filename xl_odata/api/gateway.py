"""
xl_odata.api.gateway - FastAPI OData Gateway
============================================

Read-only OData V4 endpoint for one Excel table, guarded by a static
bearer token.

Routes
------
- ``GET /health`` and ``GET /``: unauthenticated status and service info
- ``GET /odata``: service document
- ``GET /odata/$metadata``: CSDL schema
- ``GET /odata/ExcelRow``: all rows
- ``GET /odata/ExcelRow('0')`` or ``/odata/ExcelRow(0)``: one row
"""

from __future__ import annotations

import logging
import os
import re
import threading
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi import Path as PathParam
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.concurrency import run_in_threadpool

from xl_odata import __version__
from xl_odata.api.auth import AuthRejectedError, BearerGate, Rejected
from xl_odata.api.models import HealthResponse, ODataError, ServiceInfo
from xl_odata.core.connection import ConnectionContext
from xl_odata.core.errors import (
    ConfigurationError,
    ResourceNotFoundError,
    XlODataError,
)
from xl_odata.odata.metadata import build_metadata_xml
from xl_odata.odata.resolver import EntityResolver
from xl_odata.odata.table import TableFetcher

logger = logging.getLogger("xl_odata.api")

ODATA_HEADERS = {"OData-Version": "4.0"}
ODATA_JSON = "application/json;odata.metadata=minimal"

# EntitySet, EntitySet('key') or EntitySet(key)
RESOURCE_PATTERN = re.compile(
    r"^(?P<entity_set>[A-Za-z_][A-Za-z0-9_]*)"
    r"(?:\((?:'(?P<quoted>[^']*)'|(?P<bare>[^)']*))\))?$"
)


class ODataGateway:
    """
    Configuration and long-lived components for the gateway.

    Reads configuration from environment variables by default. One instance
    is created per application and owns the connection (and with it the
    token cache), the bearer gate and the entity resolver.
    """

    def __init__(
        self,
        bearer_token: Optional[str] = None,
        file_path: Optional[str] = None,
        table_name: Optional[str] = None,
        entity_set: Optional[str] = None,
        namespace: str = "ExcelService",
        connection: Optional[ConnectionContext] = None,
        fetcher: Optional[TableFetcher] = None,
    ):
        # Load from env if not provided
        if bearer_token is None:
            bearer_token = os.environ.get("API_BEARER_TOKEN", "")
        self.bearer_token = bearer_token
        self.file_path = file_path or os.environ.get("EXCEL_FILE_PATH", "Documents/data.xlsx")
        self.table_name = table_name or os.environ.get("EXCEL_TABLE_NAME", "Table1")
        self.entity_set = entity_set or os.environ.get("ODATA_ENTITY_SET", "ExcelRow")
        self.namespace = namespace

        self.connection = connection or ConnectionContext()
        self.gate = BearerGate(self.bearer_token)

        self._fetcher = fetcher
        self._resolver: Optional[EntityResolver] = None
        self._resolver_lock = threading.Lock()

    def validate(self) -> None:
        """Validate configuration. Raises ConfigurationError if invalid."""
        problems = []
        missing = self.connection.credentials.missing()
        if missing and self._fetcher is None:
            problems.append("Graph credentials (" + ", ".join(missing) + ")")
        if not self.bearer_token:
            problems.append("API_BEARER_TOKEN")
        if problems:
            raise ConfigurationError("Missing configuration: " + "; ".join(problems))

    @property
    def fetcher(self) -> TableFetcher:
        if self._fetcher is None:
            self._fetcher = self.connection.get_table(self.file_path, self.table_name)
        return self._fetcher

    @property
    def resolver(self) -> EntityResolver:
        """The entity resolver, created (and its columns loaded) on first use."""
        if self._resolver is None:
            with self._resolver_lock:
                if self._resolver is None:
                    self._resolver = EntityResolver(self.fetcher)
        return self._resolver

    def start(self) -> None:
        """Create the resolver so column loading starts before the first request."""
        logger.info(
            "Serving table %s of %s as entity set %s",
            self.table_name, self.file_path, self.entity_set,
        )
        _ = self.resolver

    def close(self) -> None:
        self.connection.close()


def get_gateway(request: Request) -> ODataGateway:
    return request.app.state.gateway


def require_bearer(
    authorization: Optional[str] = Header(default=None),
    gw: ODataGateway = Depends(get_gateway),
) -> None:
    decision = gw.gate.authorize(authorization)
    if isinstance(decision, Rejected):
        raise AuthRejectedError(decision.reason)


def _odata_json(payload: Dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        content=payload,
        status_code=status_code,
        headers=ODATA_HEADERS,
        media_type=ODATA_JSON,
    )


def _metadata_url(request: Request) -> str:
    return f"{str(request.base_url).rstrip('/')}/odata/$metadata"


def create_app(
    gateway: Optional[ODataGateway] = None,
    validate_on_startup: bool = True,
) -> FastAPI:
    """
    Create the FastAPI application.

    Parameters
    ----------
    gateway : ODataGateway, optional
        Custom gateway configuration. If None, reads from environment.
    validate_on_startup : bool
        If True, report missing configuration at creation time.

    Returns
    -------
    FastAPI
        Configured FastAPI application
    """
    gw = gateway or ODataGateway()

    if validate_on_startup:
        try:
            gw.validate()
        except ConfigurationError as e:
            # Keep serving /health so the misconfiguration is visible
            logger.warning("%s", e)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(gw.start)
        yield
        gw.close()

    app = FastAPI(
        title="Excel OData Service",
        description="""
## OData V4 endpoint for an Excel table

Rows of one table in a SharePoint/OneDrive workbook are exposed as a
read-only entity set. Each row's `id` is its zero-based position in the table.

### Authentication
Send `Authorization: Bearer <token>` with the configured static token.
        """,
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "OData", "description": "OData V4 service, metadata and entity set"},
            {"name": "Service", "description": "Health and service information"},
        ],
    )
    app.state.gateway = gw

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    @app.exception_handler(XlODataError)
    async def handle_service_error(request: Request, exc: XlODataError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc,
                exc_info=exc,
            )
        else:
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc)

        headers = dict(ODATA_HEADERS)
        if exc.status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"
        return JSONResponse(
            content=ODataError.of(exc.code, exc.public_message).model_dump(),
            status_code=exc.status_code,
            headers=headers,
        )

    # -------------------------------------------------------------------------
    # Service endpoints
    # -------------------------------------------------------------------------

    @app.get("/health", tags=["Service"], response_model=HealthResponse)
    def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok", columns=gw.resolver.state.value)

    @app.get("/", tags=["Service"], response_model=ServiceInfo)
    def info() -> ServiceInfo:
        return ServiceInfo(
            name="Excel OData Service",
            version=__version__,
            description="OData V4 endpoint for Excel files in SharePoint",
            endpoints={
                "health": "/health",
                "odata": "/odata",
                "metadata": "/odata/$metadata",
                "entitySet": f"/odata/{gw.entity_set}",
            },
        )

    # -------------------------------------------------------------------------
    # OData endpoints
    # -------------------------------------------------------------------------

    @app.get("/odata", tags=["OData"], dependencies=[Depends(require_bearer)])
    @app.get("/odata/", tags=["OData"], dependencies=[Depends(require_bearer)], include_in_schema=False)
    def service_document(request: Request) -> JSONResponse:
        """OData service document listing the entity set."""
        return _odata_json({
            "@odata.context": _metadata_url(request),
            "value": [
                {"name": gw.entity_set, "kind": "EntitySet", "url": gw.entity_set},
            ],
        })

    @app.get("/odata/$metadata", tags=["OData"], dependencies=[Depends(require_bearer)])
    def metadata() -> Response:
        """CSDL schema; property types are inferred from the current rows."""
        resolver = gw.resolver
        columns = resolver.columns()
        xml = build_metadata_xml(
            columns,
            namespace=gw.namespace,
            entity_type=gw.entity_set,
            entity_set=gw.entity_set,
            sample_rows=resolver.list_rows(),
        )
        return Response(content=xml, media_type="application/xml", headers=ODATA_HEADERS)

    @app.get("/odata/{resource}", tags=["OData"], dependencies=[Depends(require_bearer)])
    def read_resource(
        request: Request,
        resource: str = PathParam(
            ...,
            description="Entity set, optionally with a key: ExcelRow, ExcelRow('0') or ExcelRow(0)",
            examples=["ExcelRow", "ExcelRow('0')"],
        ),
    ) -> JSONResponse:
        """
        Read the entity set or one entity of it.

        The key is the row's zero-based position in the table.
        """
        m = RESOURCE_PATTERN.match(resource)
        if not m or m.group("entity_set") != gw.entity_set:
            raise ResourceNotFoundError(resource)

        context = f"{_metadata_url(request)}#{gw.entity_set}"
        key = m.group("quoted")
        if key is None:
            key = m.group("bare")

        if key is None:
            entities = gw.resolver.list_all()
            logger.info("Served %d entities of %s", len(entities), gw.entity_set)
            return _odata_json({
                "@odata.context": context,
                "value": [e.to_json() for e in entities],
            })

        entity = gw.resolver.get_by_key(key)
        payload: Dict[str, Any] = {"@odata.context": f"{context}/$entity"}
        payload.update(entity.to_json())
        return _odata_json(payload)

    return app
