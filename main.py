import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings
from database import database_status, ensure_indexes, get_db
from routes import admin_users, categories, coupons, notification, orders, payment, products, ratings, users, verification
from routes.catalog import brand_router, sub_category_router, variant_router, variant_type_router
from security import bootstrap_super_admin

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        db = get_db()
        ensure_indexes(db)
        bootstrap_super_admin(db, settings)
    except PyMongoError as e:
        logger.error("Database initialization failed: %s", e)
    yield


app = FastAPI(title=settings.app_title, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Ensure uploads directory exists and is served
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

for router in (
    categories.router,
    sub_category_router,
    brand_router,
    variant_type_router,
    variant_router,
    products.router,
    coupons.router,
    categories.poster_router,
    users.router,
    orders.router,
    payment.router,
    notification.router,
    admin_users.router,
    ratings.router,
    verification.router,
):
    app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
    return response


def envelope(status_code: int, message: str, data=None, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, "data": data}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return envelope(400, "Validation failed", errors)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), None)
    return envelope(400, f"{field} already exists" if field else "Duplicate value")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return envelope(500, "Internal server error")


def service_status(db: Database) -> dict:
    return {
        "version": settings.version,
        "environment": settings.environment,
        "database": database_status(db),
    }


@app.get("/")
def read_root(db: Database = Depends(get_db)):
    return {"success": True, "message": f"{settings.app_title} running", "data": service_status(db)}


@app.get("/health")
def health(db: Database = Depends(get_db)):
    return {"success": True, "message": "OK", "data": service_status(db)}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
