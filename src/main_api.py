from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.routers import admin, cron, locations, reservations
from src.config.settings_env import settings
from src.infrastructure.persistence.database import init_db
from src.shared.utils import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Demo locations are only seeded outside production
    init_db(seed=not settings.is_production)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Parking Reservation API", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Routers put {"error", "message"} in detail; send it as the body
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": "HTTP_ERROR", "message": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.warning(f"Rejected {request.method} {request.url.path}: {messages}")
        return JSONResponse(status_code=400, content={"error": "VALIDATION_ERROR", "message": "; ".join(messages)})

    app.include_router(reservations.router)
    app.include_router(locations.router)
    app.include_router(admin.router)
    app.include_router(cron.router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("src.main_api:app", host=settings.FASTAPI_HOST, port=settings.FASTAPI_PORT)
