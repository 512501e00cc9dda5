import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from visa_evaluation import settings
from visa_evaluation.logic.runner import build_engine
from visa_evaluation.routes import router as visa_router

logging.basicConfig(level=settings.LOG_LEVEL)
logging.info("App starting with visa evaluation engine")

app = FastAPI(title="Visa Evaluation Service", version=settings.ENGINE_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Built once; request handlers read it from app.state
app.state.engine = build_engine()

app.include_router(visa_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.exception(f"❌ Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/")
def root():
    return {"service": "visa-evaluation", "version": settings.ENGINE_VERSION}
