"""Structured logging helpers.

Every log call passes an ``event`` in ``extra``; loggers created with a
component add it to each record as well.
"""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its fields under the call's ``extra``.

    The stdlib adapter replaces the call's extra; this one merges, and the
    call's own fields take precedence.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally tagging every record with ``component``.

    Example:
        >>> logger = get_logger(__name__, component="matching")
        >>> logger.info("Query finished", extra={"event": "matching.query.completed"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger
