"""
etcd-admin Service Entrypoint

FastAPI application exposing the administrative API, plus the startup path:
configuration → logging → TLS credentials → cluster connection → HTTP server.

Usage:
    python -m etcdadmin.service --etcd-endpoints 10.0.0.1:2379,10.0.0.2:2379 \
        --cacert ca.pem --cert client.pem --key client-key.pem --listen-port 8080
"""

import logging
import sys
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from etcdadmin import __version__
from etcdadmin.api import admin
from etcdadmin.cluster_client import EtcdClusterAdapter
from etcdadmin.config import AdminConfig, load_config
from etcdadmin.errors import AdminError, ClusterConnectionError, CredentialLoadError, RemoteError
from etcdadmin.logging_config import setup_logging
from etcdadmin.tls import load_credentials

logger = logging.getLogger(__name__)


async def remote_error_handler(request: Request, exc: RemoteError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc.message} (endpoint={exc.endpoint})")
    return JSONResponse(status_code=500, content=exc.to_dict())


async def admin_error_handler(request: Request, exc: AdminError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=500, content={"error": exc.message})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} crashed: {exc}")
    return JSONResponse(status_code=500, content={"error": f"Internal error: {type(exc).__name__}: {exc}"})


def create_app(config: AdminConfig, adapter: EtcdClusterAdapter) -> FastAPI:
    """Build the FastAPI app bound to one adapter and one configuration."""
    app = FastAPI(title="etcd-admin", version=__version__)
    app.state.config = config
    app.state.adapter = adapter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Origin", "Content-Length", "Content-Type"],
    )

    app.add_exception_handler(RemoteError, remote_error_handler)
    app.add_exception_handler(AdminError, admin_error_handler)
    # Starlette re-raises after this response is sent
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(admin.router)

    @app.get("/")
    def root():
        return {
            "service": "etcd-admin",
            "message": "etcd administrative service running",
            "endpoints": list(adapter.endpoints),
        }

    @app.on_event("shutdown")
    def shutdown_cleanup():
        adapter.close()
        logger.info("etcd-admin shutdown complete")

    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point"""
    try:
        config = load_config(argv)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(debug=config.debug, log_file=config.log_file)

    try:
        credentials = load_credentials(config.cert, config.key, config.ca_cert)
        adapter = EtcdClusterAdapter.connect(
            credentials,
            config.endpoints,
            dial_timeout=config.dial_timeout,
            request_timeout=config.request_timeout,
        )
    except CredentialLoadError as e:
        logger.critical(f"Cannot load TLS credentials ({e.kind}): {e.message}")
        sys.exit(1)
    except ClusterConnectionError as e:
        logger.critical(f"Cannot connect to etcd: {e.message}")
        sys.exit(1)

    app = create_app(config, adapter)

    logger.info("=" * 60)
    logger.info(f"etcd-admin {__version__}")
    logger.info(f"API Address: {config.listen_host}:{config.listen_port}")
    logger.info(f"Endpoints: {', '.join(config.endpoints)}")
    logger.info(f"Revision source: {config.endpoints[config.revision_source]}")
    logger.info("=" * 60)

    uvicorn.run(
        app,
        host=config.listen_host,
        port=config.listen_port,
        log_level="debug" if config.debug else "info",
        log_config=None,
    )


if __name__ == "__main__":
    main()
