"""Change history for SQLAlchemy models.

Attaching the plugin to a model builds a parallel history model
(``<Model>History`` stored in ``<table>_history``) and records a snapshot of
the tracked fields every time an update changes one of them. Revision numbers
are assigned per source row by a PostgreSQL trigger.
"""

from model_history.errors import (
    FieldCollisionError,
    HistoryConfigError,
    InvalidIdAttributeError,
    UnknownTrackedFieldError,
)
from model_history.logging_config import setup_logging
from model_history.models.history import HistoryMixin
from model_history.options import HistoryOptions, resolve_options
from model_history.plugin import history

__version__ = "0.1.0"

__all__ = [
    "history",
    "HistoryOptions",
    "HistoryMixin",
    "resolve_options",
    "setup_logging",
    "HistoryConfigError",
    "InvalidIdAttributeError",
    "UnknownTrackedFieldError",
    "FieldCollisionError",
]
