"""
LTI Apps Service - Core Application

This module provides the FastAPI application serving app listings and
launch definitions.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from .config import get_settings
from .database import init_db, close_db
from .exceptions import BaseAPIException

logger = logging.getLogger(__name__)


class LtiAppsApp:
    """Application wrapper owning the FastAPI instance."""
    
    def __init__(self):
        """Initialize the base application."""
        self.settings = get_settings()
        self.app = None
        self._create_app()
    
    def _create_app(self):
        """Create the FastAPI application instance."""
        
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            """Application lifespan manager."""
            logger.info(f"Starting {self.settings.PROJECT_NAME} v{self.settings.VERSION}")
            await init_db()
            logger.info("Database initialized")
            
            yield
            
            await close_db()
            logger.info("Database connections closed")
        
        self.app = FastAPI(
            title=self.settings.PROJECT_NAME,
            description="Lists LTI apps and launch definitions for accounts and courses",
            version=self.settings.VERSION,
            openapi_url=f"{self.settings.API_V1_STR}/openapi.json",
            docs_url=f"{self.settings.API_V1_STR}/docs",
            redoc_url=f"{self.settings.API_V1_STR}/redoc",
            lifespan=lifespan,
        )
        
        self._add_middleware()
        self._add_exception_handlers()
        self._add_routes()
    
    def _add_middleware(self):
        """Add middleware to the application."""
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=list(self.settings.BACKEND_CORS_ORIGINS),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        
        @self.app.middleware("http")
        async def add_process_time_header(request, call_next):
            start_time = time.time()
            response = await call_next(request)
            response.headers["X-Process-Time"] = str(time.time() - start_time)
            return response
    
    def _add_exception_handlers(self):
        """Render application exceptions with their status codes."""
        
        @self.app.exception_handler(BaseAPIException)
        async def api_exception_handler(request: Request, exc: BaseAPIException):
            if exc.status_code >= 500:
                logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.message, **exc.details},
            )
    
    def _add_routes(self):
        """Add routes to the application."""
        @self.app.get("/")
        async def root():
            return {
                "name": self.settings.PROJECT_NAME,
                "version": self.settings.VERSION,
                "docs": f"{self.settings.API_V1_STR}/docs",
            }
        
        from api.v1 import api_router
        self.app.include_router(api_router, prefix=self.settings.API_V1_STR)
    
    def get_app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self.app


def create_app() -> FastAPI:
    """Create and return the FastAPI application."""
    return LtiAppsApp().get_app()
