from arq import cron
from arq.connections import RedisSettings
from opentelemetry import trace

from chaoslinks.config import settings
from chaoslinks.observability.logger import configure_logging
from chaoslinks.repositories.shared_configuration_repository import SharedConfigurationRepository
from chaoslinks.utils.expiration import utcnow
from chaoslinks.utils.logger import log_info
from chaoslinks.utils.telemetry import init_otel
from chaoslinks import config


async def purge_expired_shares(ctx) -> dict:
    """Periodic sweep of shares past their expiry.

    Reads already delete expired shares lazily; this only bounds table growth
    for links nobody opens again.
    """
    tracer = trace.get_tracer("worker")
    with tracer.start_as_current_span("purge_expired_shares"):
        removed = await SharedConfigurationRepository().delete_expired(utcnow())
    await ctx["redis"].incrby("jobs:shares_purged", removed)
    log_info(f"purge_expired_shares: removed {removed} expired shares")
    return {"removed": removed}


class WorkerSettings:
    functions = [purge_expired_shares]
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    cron_jobs = [
        cron(purge_expired_shares, minute={5}),
    ]

    @staticmethod
    async def startup(ctx):
        configure_logging(config)
        if settings.OTEL_ENABLED:
            init_otel(service_name="chaoslinks-worker")
