"""
xl_odata.api - OData HTTP Gateway
=================================

FastAPI application exposing the configured Excel table as an OData V4
entity set.

Usage
-----
>>> from xl_odata.api import create_app
>>> app = create_app()
>>> # Run with: uvicorn xl_odata.api:app

Or run directly:
>>> python -m xl_odata.api

"""

from pathlib import Path

from dotenv import load_dotenv

# Load .env before the gateway reads the environment
env_path = Path.cwd() / ".env"
if not env_path.exists():
    env_path = Path(__file__).resolve().parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from xl_odata.api.gateway import create_app, ODataGateway
from xl_odata.api.auth import BearerGate, Authorized, Rejected, RejectReason

# Create default app instance for uvicorn
app = create_app()

__all__ = [
    "create_app",
    "ODataGateway",
    "BearerGate",
    "Authorized",
    "Rejected",
    "RejectReason",
    "app",
]
