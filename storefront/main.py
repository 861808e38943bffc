import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.app.bookings import InMemoryWorkshopCatalog, WorkshopCatalog
from storefront.app.commerce import StorefrontService
from storefront.app.routes.storefront import router as storefront_router
from storefront.app.services.storefront import build_storefront_service
from storefront.config import StorefrontConfig, load_storefront_config

logger = logging.getLogger("storefront")


def create_app(
    service: Optional[StorefrontService] = None,
    *,
    config: Optional[StorefrontConfig] = None,
    catalog: Optional[WorkshopCatalog] = None,
) -> FastAPI:
    """Build the API with a single storefront service shared by all requests."""

    load_dotenv()
    config = config or load_storefront_config()
    logging.basicConfig(level=config.log_level)

    if service is None:
        service = build_storefront_service(
            config,
            catalog=catalog if catalog is not None else InMemoryWorkshopCatalog(),
        )

    app = FastAPI(title="Workshop Storefront API")
    app.state.storefront_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[os.getenv("CORS_ORIGIN", "http://localhost:5173")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(storefront_router)

    @app.on_event("startup")
    async def refresh_entitlements() -> None:
        result = await service.refresh()
        if not result.success:
            logger.warning("Initial entitlement refresh failed: %s", result.message)
        await service.load_offerings()

    return app
