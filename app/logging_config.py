import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once with a console handler."""
    root = logging.getLogger()
    if root.handlers:
        # Already configured (e.g. by uvicorn or a previous startup)
        return

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
