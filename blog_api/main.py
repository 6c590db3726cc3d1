from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from .api.api import api_router
from .db.database import create_tables, dispose_engine
import logging
import json
import traceback

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # make sure tables are created
    create_tables()
    yield
    # drain the connection pool
    dispose_engine()

logger = logging.getLogger("fastapi")

app = FastAPI(title="blog-api", lifespan=lifespan)


MISSING_FIELDS_MESSAGE = "Please enter fields : title, content and category"
TAGS_NOT_ARRAY_MESSAGE = "Tags must be an array"
INVALID_TAG_MESSAGE = "Tags must be strings of at most 50 characters"


def validation_message(errors) -> str:
    """Summarize pydantic errors the way clients of the posts API expect"""
    body_locs = [error["loc"][1:] for error in errors if error["loc"] and error["loc"][0] == "body"]
    if any(loc and loc[0] in ("title", "content", "category") for loc in body_locs):
        return MISSING_FIELDS_MESSAGE
    if any(loc and loc[0] == "tags" and len(loc) == 1 for loc in body_locs):
        return TAGS_NOT_ARRAY_MESSAGE
    if any(loc and loc[0] == "tags" for loc in body_locs):
        return INVALID_TAG_MESSAGE
    return "Invalid request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Invalid bodies and parameters are client errors"""
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": validation_message(errors), "detail": jsonable_encoder(errors)}
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        f"Database error on {request.method} {request.url.path}\n"
        f"Error: {str(exc)}\n"
        f"Traceback: {''.join(traceback.format_exception(exc))}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    body = await request.body()
    request_info = {
        "url": str(request.url),
        "method": request.method,
        "body": body.decode(errors="replace") if body else None,
        "path_params": request.path_params,
        "query_params": dict(request.query_params)
    }

    try:
        # execute the request
        response = await call_next(request)

        if response.status_code >= 400:
            response_body = b""
            async for chunk in response.body_iterator:
                response_body += chunk

            logger.error(
                f"Request failed with status {response.status_code}\n"
                f"Request: {json.dumps(request_info, indent=2)}\n"
                f"Response: {response_body.decode()}\n"
            )
            return Response(
                content=response_body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )

        return response

    except Exception as e:
        logger.error(
            f"Request failed with exception\n"
            f"Request: {json.dumps(request_info, indent=2)}\n"
            f"Error: {str(e)}\n"
            f"Traceback: {traceback.format_exc()}"
        )
        raise

# register the API router
app.include_router(api_router)
