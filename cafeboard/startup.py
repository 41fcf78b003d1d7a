from cafeboard.core.config import settings
from cafeboard.core.logger import configure_logging, get_logger

logger = get_logger("startup")


def initialize_application():
    """Configure logging and announce the effective runtime settings."""
    configure_logging()
    logger.info("initializing_application")
    logger.info(
        "application_initialized",
        extra={
            "service_name": settings.service_name,
            "environment": settings.app_environment,
            "cache_backend": settings.cache_backend,
            "cache_refresh_enabled": settings.cache_refresh_enabled,
            "cache_refresh_interval_seconds": settings.cache_refresh_interval_seconds,
        },
    )
