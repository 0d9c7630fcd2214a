"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from provisioner import __version__
from provisioner.config import settings
from provisioner.routers import health, resources
from provisioner.services.ssh_session import ParamikoSessionFactory
from provisioner.utils.debug_log import DebugSink
from provisioner.utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    setup_logging()
    # One debug sink and one session factory for every apply in the process
    app.state.debug_sink = DebugSink(settings.provisioner_debug_log)
    app.state.session_factory = ParamikoSessionFactory(settings)
    yield
    app.state.debug_sink.close()


app = FastAPI(
    title="SSH Provisioner",
    description="Declarative file and command provisioning over SSH",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(resources.router)
