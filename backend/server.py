from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.base_api import register_error_handlers
from core.logger import Logger, setup_logging
from core.registry import ServiceRegistry
import services.stripe.api  # noqa: F401  registers the stripe router

# Initialize logger before anything else
setup_logging()

app_logger = Logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting up application...")
    stripe_service = ServiceRegistry.get_service("stripe")
    health = await stripe_service.check_health()
    if health.ok:
        app_logger.info(health.message)
    else:
        app_logger.warning(f"Stripe not ready ({health.status.value}): {health.message}")
    yield
    app_logger.info("Shutting down application...")


app = FastAPI(title="Stripe Metrics", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
for router in ServiceRegistry.get_all_apis():
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host="0.0.0.0", port=8000)
