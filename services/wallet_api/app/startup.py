import asyncio
import random
import sys

from fastapi import FastAPI
from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .db.base import Base
from .db.session import dispose_engine, get_engine
from .settings import wallet_settings


def setup_logging() -> None:
    """Configure Loguru for consistent, structured service logs."""
    logger.remove()
    logger.add(
        sink=sys.stdout,
        level=wallet_settings().log_level.upper(),
        backtrace=False,
        diagnose=False,
        colorize=False,
        serialize=False,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
    )


def setup_instrumentation(app: FastAPI) -> None:
    """Attach OpenTelemetry tracing when an exporter endpoint is configured."""
    settings = wallet_settings()
    if not settings.otel_endpoint:
        return
    if trace.get_tracer_provider() and not isinstance(trace.get_tracer_provider(), trace.NoOpTracerProvider):
        logger.info("OpenTelemetry instrumentation already initialized. Skipping reconfiguration.")
        return
    resource = Resource(attributes={SERVICE_NAME: settings.service_name})
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_endpoint)))
    trace.set_tracer_provider(tracer_provider)
    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider)
    app.state.tracer_provider = tracer_provider
    logger.info("OpenTelemetry instrumentation configured.")


async def wait_for_database(engine: AsyncEngine, max_retries: int = 5, base_delay: float = 2.0) -> None:
    """Poll the database until it answers, with exponential backoff and jitter."""
    for attempt in range(max_retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection successful.")
            return
        except Exception as e:
            if attempt + 1 == max_retries:
                break
            total_wait = base_delay * (2 ** attempt) + random.uniform(0, 0.5)
            logger.warning(f"Database not ready (attempt {attempt + 1}/{max_retries}): {e}. Retrying in {total_wait:.2f}s...")
            await asyncio.sleep(total_wait)
    raise RuntimeError("Database not ready after multiple attempts.")


async def init_service_startup(app: FastAPI) -> None:
    """Wait for the database and create the wallet tables if asked to."""
    settings = wallet_settings()
    logger.info(f"Initializing {settings.service_name} ({settings.environment})...")
    for key, value in settings.safe_dict().items():
        logger.info(f"    {key}: {value}")

    engine = get_engine()
    await wait_for_database(engine, settings.db_connect_retries, settings.db_connect_delay_seconds)
    if settings.create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Wallet tables are in place.")
    logger.info(f"{settings.service_name} startup completed successfully.")


async def shutdown_service(app: FastAPI) -> None:
    """Stop the serializer and close database connections."""
    logger.info("Please wait while the service is being closed...")
    await app.state.serializer.stop()
    await dispose_engine()
    tracer_provider = getattr(app.state, "tracer_provider", None)
    if tracer_provider:
        tracer_provider.shutdown()
    logger.info("Service closed.")
