import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront import __version__
from storefront.config import settings
from storefront.database import Base, engine
from storefront.errors import StorefrontError
from storefront.logging_config import setup_logging
from storefront.routers import cart, coupons, free_products, gift_popup, products

setup_logging()
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Storefront Promotions API",
    description="Coupons, gift-with-purchase rules, gift popup and session carts for the storefront",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# credentials cannot be combined with a wildcard origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(coupons.router)
app.include_router(products.router)
app.include_router(free_products.router)
app.include_router(gift_popup.router)
app.include_router(cart.router)


@app.get("/health")
def health():
    return {"status": "healthy"}


def _error_response(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "message": message,
            "error": {"status_code": status_code, "detail": message, "code": code, **extra},
        },
    )


@app.exception_handler(StorefrontError)
async def storefront_exception_handler(request: Request, exc: StorefrontError):
    return _error_response(exc.status_code, exc.message, exc.code, **exc.extra)


# Proper JSON error with correct status code
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"][1:]) or "body"
        errors[field] = error["msg"]
    message = next(iter(errors.values()), "Validation failed")
    return _error_response(400, message, "ValidationError", errors=errors)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error", "InternalError")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
