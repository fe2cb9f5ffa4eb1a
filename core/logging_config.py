import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # passlib logs a harmless traceback while probing newer bcrypt builds
    logging.getLogger("passlib").setLevel(logging.ERROR)
