import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from anyio import to_thread
from fastapi import FastAPI

from .src.config import Settings
from .src.logging import jlog
from .src.output import PubsubOutput
from .src.routers import events
from .otel import init_tracing

settings = Settings() # type: ignore

# -----------------------
# Lifecycle hooks
# -----------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Registration must succeed before any event is accepted
    output = PubsubOutput(settings)
    await to_thread.run_sync(output.start)

    app.state.output = output
    # single in-flight publish
    app.state.output_semaphore = asyncio.Semaphore(1)
    try:
        yield
    finally:
        await to_thread.run_sync(output.stop)
        jlog(event="stopped", topic=settings.full_topic)

app = FastAPI(title="Pub/Sub Output", version="1.0.0", lifespan=lifespan)
app.include_router(events.router)

tracer = init_tracing(app, service_name=settings.service_name, service_version="v1")

@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": settings.service_name,
        "topic": settings.full_topic,
    }
