import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clickbin.config import settings
from clickbin.routers import analyses, binning

logging.basicConfig(level=settings.log_level)

app = FastAPI(title="ClickBin API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(binning.router)
app.include_router(analyses.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
