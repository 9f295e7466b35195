import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import make_asgi_app

from api.v1.endpoints import feeds, news, selectors
from core.config import Settings, get_settings
from core.exceptions import FeedToolError, RequestValidationFailed
from core.logging import setup_logging
from services.crawler.config_loader import get_catalogue
from services.feed_service import FeedService
from services.inference.gemini import GeminiClient, GeminiSelectorInferencer, GeminiStructureAnalyzer
from services.inference.grok import GrokClient, GrokNewsExtractor
from services.inference.news_service import NewsScanService
from services.inference.page_analysis import PageAnalysisService
from services.inference.selector_service import SelectorService
from services.scraper.fetcher import PageFetcher


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    gemini: Optional[GeminiClient] = None,
    grok: Optional[GrokClient] = None,
) -> FastAPI:
    """
    Build the application.

    ``transport`` replaces the network for the shared HTTP client and
    ``gemini`` / ``grok`` replace the clients normally built from settings;
    tests use all three.
    """
    settings = settings or get_settings()

    # ------------------------------------------------------------------
    # FastAPI App Lifecycle
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            logger.info("Initializing application...")
            catalogue = get_catalogue()
            fetcher = PageFetcher.create(settings, transport=transport)

            gemini_client = gemini or GeminiClient.from_settings(settings)
            grok_client = grok or GrokClient.from_settings(settings)
            logger.info(
                f"LLM providers: gemini={'on' if gemini_client else 'off'}, grok={'on' if grok_client else 'off'}"
            )

            selector_service = SelectorService(
                settings,
                catalogue,
                llm=GeminiSelectorInferencer(gemini_client) if gemini_client else None,
            )
            grok_extractor = GrokNewsExtractor(grok_client) if grok_client else None

            app.state.settings = settings
            app.state.fetcher = fetcher
            app.state.grok = grok_extractor
            app.state.feed_service = FeedService(fetcher, selector_service, settings, catalogue)
            app.state.news_service = NewsScanService(
                fetcher, selector_service, grok_extractor, settings, catalogue
            )
            app.state.page_analysis = PageAnalysisService(
                fetcher,
                selector_service,
                GeminiStructureAnalyzer(gemini_client) if gemini_client else None,
                settings,
            )

            yield

            logger.info("Shutting down application...")
            await fetcher.aclose()
            if grok_client is not None:
                await grok_client.close()

        except Exception as e:
            logger.exception(f"Application lifecycle error: {str(e)}")
            raise

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Turn any website into an RSS feed",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS,
    )

    app.include_router(selectors.router, prefix="/api/v1", tags=["selectors"])
    app.include_router(feeds.router, prefix="/api/v1", tags=["feeds"])
    app.include_router(news.router, prefix="/api/v1", tags=["news"])

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Every failure is reported as {success: false, error} with status 200.
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        error = RequestValidationFailed(errors=list(exc.errors()))
        logger.info(f"Rejected request to {request.url.path}: {error.message}")
        return JSONResponse(status_code=status.HTTP_200_OK, content=error.to_dict())

    @app.exception_handler(FeedToolError)
    async def feed_tool_exception_handler(request: Request, exc: FeedToolError):
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=status.HTTP_200_OK, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"success": False, "error": "An unexpected error occurred"},
        )

    # Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": time.time()}

    @app.get("/")
    async def root():
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "description": "Turn any website into an RSS feed",
            "docs_url": "/docs",
            "health_check": "/health",
        }

    return app


setup_logging(get_settings().LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=_settings.PORT,
        reload=_settings.DEBUG,
        workers=_settings.WORKERS,
        log_level=_settings.LOG_LEVEL.lower(),
    )
