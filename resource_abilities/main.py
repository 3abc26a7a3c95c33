from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from resource_abilities.abilities.gate import Gate
from resource_abilities.abilities.resolver import AbilityResolver, ResolverConfig
from resource_abilities.db.init_db import init_db
from resource_abilities.logging_config import configure_app_logging
from resource_abilities.policies.blog import build_registry
from resource_abilities.routers import posts
from resource_abilities.security.config import load_abilities_config
from resource_abilities.settings import get_settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        config_path = settings.resolved_abilities_config_path()
        gate = Gate.from_config(load_abilities_config(config_path), build_registry())
        logger.info("Loaded abilities config: %s", config_path)

        # Built once; shared read-only by every request.
        app.state.ability_resolver = AbilityResolver(gate, ResolverConfig.from_settings(settings))
        logger.info("Ability serializer: %r", app.state.ability_resolver.config.serializer)

        init_db()
        logger.info("Database initialized (tables ensured + seed if needed)")

        yield

    app = FastAPI(lifespan=lifespan)
    app.include_router(posts.router)

    return app


app = create_app()
