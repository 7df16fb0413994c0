import logging
import os

from app.core.config import settings


def get_module_logger(module_name: str, log_file: str):
    """Module logger writing to ``<LOG_DIR>/<log_file>``."""
    logger = logging.getLogger(module_name)
    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    # Prevent adding multiple handlers if logger is called multiple times
    if not logger.handlers:
        path = os.path.join(settings.LOG_DIR, log_file)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handler = logging.FileHandler(path)
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def mask_secret(value) -> str:
    """Short, log-safe preview of a token."""
    if not value:
        return "missing"
    return f"{value[:6]}..."
