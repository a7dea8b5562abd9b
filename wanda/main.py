import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()
from fastapi import FastAPI

from wanda.api.endpoints import events, health, inbound
from wanda.config import settings
from wanda.database import create_db_and_tables

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()

    missing = settings.missing_required()
    if missing:
        logger.warning(f"Missing required configuration: {', '.join(missing)}; inbound calls will be refused")
    if settings.LOCAL:
        if settings.PUBLIC_BASE_URL:
            logger.info(f"Running locally; tools will call back through {settings.PUBLIC_BASE_URL}")
        else:
            logger.warning("LOCAL is set but PUBLIC_BASE_URL is empty; Vapi will not be able to reach this server")
    logger.info(f"Wanda is ready (model {settings.MODEL_PROVIDER}/{settings.MODEL}, SIP bridge {settings.SIP_BRIDGE_ENABLED})")
    yield


app = FastAPI(
    title="Wanda Voice Assistant API",
    lifespan=lifespan,
    description="Webhook backend for the Wanda phone assistant squad.",
    version="1.0.0",
)

app.include_router(inbound.router, tags=["Calls"])
app.include_router(events.router, tags=["Webhooks"])
app.include_router(health.router, tags=["Health"])


@app.get("/", tags=["Root"])
def read_root():
    """Welcome message."""
    return {"status": "Wanda Voice Assistant API is running"}
