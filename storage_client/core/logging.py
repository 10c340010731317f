"""Logging setup for the storage client."""
import logging
import sys

from storage_client.core.config import AppConfig, Settings
from storage_client.core.operation_context import get_operation_id


def configure_logging(
    settings: Settings | AppConfig, *,
    logger_name: str = "storage_client",
) -> logging.Logger:
    """Configure the root logger and return the application logger.

    Args:
        settings: Settings carrying the log level.
        logger_name: Name of the logger to retrieve.

    Returns:
        Configured logger instance.
    """

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[%(filename)s:%(lineno)d] - op_id=%(op_id)s - %(message)s"
        ),
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs) -> logging.LogRecord:
        record = old_factory(*args, **kwargs)
        record.op_id = get_operation_id() or "system"
        return record

    logging.setLogRecordFactory(record_factory)

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
    #logging.getLogger("websockets.client").setLevel(logging.DEBUG)

    logger.debug("Logging configured with level %s", logging.getLevelName(log_level))
    return logger
