from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contestbot.api.routes import router
from contestbot.api.admin_routes import router as admin_router
from contestbot.observability.logging import log
from contestbot.settings import settings

app = FastAPI(title="Contest Registration API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Contest registration API is running. Webhook at GET/POST /webhook.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# An unexpected error is isolated to its own event. Answering 200 keeps the
# messaging provider from redelivering (and replaying) the same message.
# ---------------------------------------------------------------------------
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(
        event="unhandled_exception",
        path=str(request.url.path),
        method=request.method,
        errorType=type(exc).__name__,
        error=str(exc)[:500],
    )
    return JSONResponse(status_code=200, content={"status": "error"})
