"""
xl_odata.api - Run as module

Usage: python -m xl_odata.api
"""

import logging
import os

import uvicorn


def main():
    """Run the OData gateway server."""
    host = os.environ.get("ODATA_HOST", "0.0.0.0")
    port = int(os.environ.get("ODATA_PORT", os.environ.get("PORT", "3000")))
    reload = os.environ.get("ODATA_RELOAD", "false").lower() == "true"
    log_level = os.environ.get("ODATA_LOG_LEVEL", os.environ.get("LOG_LEVEL", "info")).lower()

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("xl_odata").info("Starting Excel OData Service on %s:%s", host, port)

    uvicorn.run(
        "xl_odata.api:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
