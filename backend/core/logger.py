"""Shared logger setup for the backend."""
import logging

from core.config import settings

ROOT_LOGGER_NAME = "backhouse"

_root = logging.getLogger(ROOT_LOGGER_NAME)
if not _root.handlers:
    h = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    h.setFormatter(fmt)
    _root.addHandler(h)
    _root.setLevel(getattr(logging, settings.log_level, logging.INFO))


def get_logger(name: str = "") -> logging.Logger:
    if not name:
        return _root
    return _root.getChild(name)
