from fastapi import FastAPI

from callbridge.config import settings
from callbridge.logging_config import setup_logging
from callbridge.routers import webhooks

setup_logging(settings.log_level)

app = FastAPI(
    title="callbridge",
    description="Relays calls and SMS between OpenPhone and Plain",
    version="0.1.0",
)

app.include_router(webhooks.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
