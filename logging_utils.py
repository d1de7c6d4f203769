import logging

from config import settings

LOG_FORMAT = "%(asctime)s [%(threadName)-12.12s] [%(levelname)-5.5s]  %(message)s"

_root = logging.getLogger("box")


def _configure() -> None:
    if _root.handlers:
        return
    _root.setLevel(settings.LOG_LEVEL.upper())
    _root.propagate = False
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    _root.addHandler(console)


def get_logger(name: str) -> logging.Logger:
    _configure()
    return _root.getChild(name)
