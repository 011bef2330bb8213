import logging


def setup_logging(debug: bool = False) -> None:
    """Configure basic logging for chargeview entry points."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # urllib3 logs every connection at debug level
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
