from .secretenv import init_secrets
from dotenv import load_dotenv

init_secrets()
load_dotenv()

from fastapi import FastAPI
from contextlib import asynccontextmanager
from .singleton import prisma
from fastapi.middleware.cors import CORSMiddleware
from .routers import health, test
from .routers.admin import test as admin_test
from .routers.coordinator import test as coordinator_test
from .routers.teacher import (
    test as teacher_test,
    drafts as teacher_drafts,
)
import logging


logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    try:
        await prisma.connect()
        yield
    except Exception as e:
        log.error(f"FastAPI startup error during init setup: {e}", exc_info=True)
        raise
    finally:
        await prisma.disconnect()
        log.info("FastAPI shutdown: Cleaning up resources...")


app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# admin endpoints
app.include_router(admin_test.router)

# coordinator endpoints
app.include_router(coordinator_test.router)

# teacher endpoints
app.include_router(teacher_test.router)
app.include_router(teacher_drafts.router)

# user endpoints
app.include_router(health.router)
app.include_router(test.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
