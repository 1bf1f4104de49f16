"""
FluidSDK MCP Server - FastAPI application

Exposes calculator, weather, echo and timestamp tools, prompt templates and
documentation resources to AI agents over three transports:

  - JSON-RPC 2.0 at POST /mcp
  - flattened REST at /mcp/{tools,prompts,resources,calculate,weather,echo,timestamp}
  - native MCP (streamable HTTP) at /mcp/stream

Tool calls are priced in USDC on Base via x402 when FACILITATOR_URL and
ADDRESS are configured; otherwise every route is free.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from dispatcher import Dispatcher, build_dispatcher
from facilitator import PaymentVerifier
from mcp_server import STREAM_PATH, build_mcp
from routes.health import router as health_router
from routes.mcp import router as mcp_router
from routes.tools import router as tools_router
from settings import SERVER_TITLE, SERVER_VERSION, Settings
from tool_executor import ToolExecutor

logger = logging.getLogger("fluid-mcp")

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


# ---------------------------------------------------------------------------
# MCP Server (streamable HTTP transport)
# ---------------------------------------------------------------------------

def create_mcp_app(dispatcher: Dispatcher, settings: Settings):
    """Create the MCP streamable-HTTP application, or None if FastMCP fails.

    Uses stateless_http=True so no session state is kept between requests.
    """
    try:
        mcp_app = build_mcp(dispatcher, settings).http_app(path="/", stateless_http=True)
        logger.info("MCP streamable HTTP server created")
        return mcp_app
    except Exception as e:
        logger.warning("MCP server creation failed: %s; %s disabled", e, STREAM_PATH)
        return None


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    verifier: Optional[PaymentVerifier] = None,
    executor: Optional[ToolExecutor] = None,
) -> FastAPI:
    """Build the HTTP app. Tests pass explicit settings and a fake verifier."""
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    dispatcher = build_dispatcher(settings, verifier=verifier, executor=executor)
    mcp_app = create_mcp_app(dispatcher, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Chain the MCP app lifespan so its session manager task group starts."""
        logger.info(
            "%s v%s ready. payment=%s network=%s",
            SERVER_TITLE, SERVER_VERSION,
            "enabled" if settings.payment_enabled else "disabled", settings.network,
        )
        if mcp_app and getattr(mcp_app, "lifespan", None):
            async with mcp_app.lifespan(mcp_app):
                logger.info("MCP StreamableHTTPSessionManager started")
                yield
        else:
            yield
        logger.info("Shutting down %s", SERVER_TITLE)

    app = FastAPI(
        title=SERVER_TITLE,
        description=(
            "MCP server for FluidSDK agents. Tools, prompts and resources over "
            "JSON-RPC 2.0, flattened REST and streamable HTTP, with x402 USDC "
            "micropayments on Base."
        ),
        version=SERVER_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-PAYMENT-RESPONSE"],
    )

    @app.middleware("http")
    async def mcp_stream_trailing_slash(request: Request, call_next):
        """Rewrite /mcp/stream to /mcp/stream/ so MCP clients aren't 307 redirected.

        MCP clients do not follow POST redirects.
        """
        if request.url.path == STREAM_PATH:
            request.scope["path"] = f"{STREAM_PATH}/"
        return await call_next(request)

    @app.middleware("http")
    async def attach_state(request: Request, call_next):
        """Inject settings and the dispatcher into request state for route handlers."""
        request.state.settings = settings
        request.state.dispatcher = dispatcher
        response: Response = await call_next(request)
        return response

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    app.include_router(health_router)
    app.include_router(mcp_router)
    app.include_router(tools_router)

    if mcp_app:
        app.mount(STREAM_PATH, mcp_app)
        logger.info("MCP streamable HTTP server mounted at %s", STREAM_PATH)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=Settings.from_env().port)
