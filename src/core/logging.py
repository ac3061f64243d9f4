import logging


class HealthCheckFilter(logging.Filter):
    """Filter out noisy health check log messages from uvicorn access logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "GET /api/health" in message and "200" in message:
            return False
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # httpx logs every request at INFO; the platform client logs its own.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    uvicorn_access_logger = logging.getLogger("uvicorn.access")
    uvicorn_access_logger.addFilter(HealthCheckFilter())
