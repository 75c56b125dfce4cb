"""Logging helpers for the fabric planner."""

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    The library never attaches handlers or sets levels. Embedding
    applications configure logging for the "fabric_planner" namespace.

    Args:
        name: Logger name, typically __name__ from calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
