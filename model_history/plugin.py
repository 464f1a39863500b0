"""The history plugin factory.

    OrderHistory = history("status", "total")(Order)
    OrderHistory = history(["status", "total"])(Order)
    OrderHistory = history({"track": ["status"], "idAttr": "code"})(Order)
    OrderHistory = history(track=["status"], table_name="order_audit")(Order)
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from model_history.models.history import build_history_model
from model_history.options import resolve_options
from model_history.services.history_service import associate, register_hooks

logger = logging.getLogger(__name__)


def normalize_options(args: tuple, kwargs: dict[str, Any]) -> dict[str, Any]:
    """
    Turn the accepted call shapes into a single options mapping.

    Raises:
        TypeError: If positional and keyword options are mixed
    """
    if kwargs:
        if args:
            raise TypeError("history() takes either positional fields or keyword options, not both")
        return dict(kwargs)
    if not args:
        return {}
    if len(args) == 1 and isinstance(args[0], Mapping):
        return dict(args[0])
    if len(args) == 1 and isinstance(args[0], (list, tuple)):
        return {"track": list(args[0])}
    return {"track": list(args)}


def history(*args: Any, **kwargs: Any) -> Callable[[type], type]:
    """
    Create a plugin that attaches change history to a model.

    Accepts a list of field names, an options mapping, field names as
    positional arguments, or options as keywords.

    Returns:
        attach(model), which returns the new history model
    """
    options = normalize_options(args, kwargs)

    def attach(model: type) -> type:
        resolved = resolve_options(model, options)
        history_model = build_history_model(model, resolved)
        associate(history_model, model)
        register_hooks(history_model, model)
        logger.info(
            "Tracking history of %s in %s (%s)",
            model.__name__,
            resolved.table_name,
            ", ".join(resolved.track),
        )
        return history_model

    return attach
