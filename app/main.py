from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import router
from app.api.admin_routes import router as admin_router
from app.settings import settings
from app.core.state_machine import ERR_INTERNAL, INTERNAL_ERROR
from app.observability.logging import log

app = FastAPI(title="iVALT MFA Service")

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
        "message": "iVALT MFA service is running. Use POST /api/ivalt/authenticate or /api/ivalt/setup/action.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


# Remote-call failures are already turned into flow results; anything that
# reaches here is a bug or an unavailable store.
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(event="unhandled_exception", path=request.url.path, errorType=type(exc).__name__, error=str(exc)[:500])
    return JSONResponse(
        status_code=500,
        content={"status": "failure", "error": ERR_INTERNAL, "flowError": INTERNAL_ERROR},
    )


log(
    event="boot",
    ivaltBaseUrl=settings.IVALT_API_BASE_URL,
    ivaltConfigured=bool(settings.IVALT_API_KEY),
    authMaxPollAttempts=int(settings.AUTH_MAX_POLL_ATTEMPTS),
    enrollTimeoutMs=int(settings.ENROLL_TIMEOUT_MS),
)
