from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from einbot.api.routes import router
from einbot.api.admin_routes import router as admin_router
from einbot.core.errors import InputValidationError
from einbot.observability.logging import log
from einbot.settings import settings

app = FastAPI(title="EIN Form Automation API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
if origins:
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
        "message": "EIN automation API is running. Use /health and POST /run-irs-ein."
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError):
    return JSONResponse(status_code=400, content={"status": "fail", "problems": exc.problems})


@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    try:
        log(event="http_unhandled_exception", path=request.url.path, errorType=type(exc).__name__,
            error=str(exc)[:300])
    except Exception:
        pass
    return JSONResponse(status_code=500, content={"status": "error", "message": "internal error"})
