import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DDTHH:mm:ss!UTC}Z</green> | "
    "<level>{level: <8}</level> | "
    "{message}"
)


def setup_logging(debug: bool = False) -> None:
    """
    Route loguru output to stderr at INFO, or DEBUG when debug is set.

    Replaces loguru's default sink so repeated calls do not duplicate output.

    Args:
        debug (bool): Whether to emit debug messages (request/response payloads,
                      execution timings).
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format=LOG_FORMAT)
