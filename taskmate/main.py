from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, HTMLResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from taskmate.config import APP_NAME, CORS_ORIGINS, PORT
from taskmate.database import engine, Base
# every model must be imported before create_all
import taskmate.model  # noqa: F401
from taskmate.controller import auth, connections, tools, calendar, canvas, gmail, tasks, categories, dashboard
from taskmate.utils.response import fail
from taskmate.utils.logger import get_logger
from taskmate.utils.jwt_middleware import JWTRefreshMiddleware
import uvicorn

logger = get_logger("main")

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=APP_NAME,
    description="Student dashboard API: tasks, Canvas assignments, Google Calendar and Gmail summaries",
    version="1.0.0",
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Report the first validation problem in the standard envelope
    """
    errors = exc.errors()
    if errors:
        msg = errors[0].get("msg", "Validation failed")
        if "Value error" in msg:
            msg = msg.replace("Value error, ", "")
        logger.warning(f"Request validation failed: {msg}")
    else:
        msg = "Request validation failed"
        logger.warning(f"Request validation failed: {exc}")

    return JSONResponse(status_code=200, content=fail(msg=msg))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=200, content=fail(msg="Internal server error"))


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-New-Token"],
)

app.add_middleware(JWTRefreshMiddleware)

app.include_router(auth.router, prefix="/auth", tags=["authentication"])
app.include_router(connections.router, prefix="/api/auth", tags=["connections"])
app.include_router(tools.router, prefix="/api/tools", tags=["tools"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["calendar"])
app.include_router(canvas.router, prefix="/api/canvas", tags=["canvas"])
app.include_router(gmail.router, prefix="/api/gmail", tags=["gmail"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])


@app.get("/", response_class=HTMLResponse)
async def root():
    return f"<h1 style=\"text-align: center; margin-top: 50px;\">{APP_NAME}</h1>"


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": APP_NAME}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT, reload=False)
