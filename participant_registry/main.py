from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from participant_registry.api.routes import router
from participant_registry.api.ops_routes import router as ops_router
from participant_registry.observability.logging import log
from participant_registry.settings import settings

app = FastAPI(title="Participant Registry API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(ops_router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Participant Registry API is running. See /docs for the /registry operations."
    }


@app.get("/health")
def health():
    return {"status": "ok"}


# Expected rejections never reach this: they are RegistryResult bodies.
# Anything here is a defect (e.g. RegistryInvariantError) or an outage.
@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log(
        event="unhandled_exception",
        path=request.url.path,
        errorType=type(exc).__name__,
        error=str(exc)[:500],
    )
    return JSONResponse(
        status_code=500,
        content={"ok": False, "value": None, "error": "INTERNAL"},
    )
