"""Configuration errors raised while attaching history to a model."""


class HistoryConfigError(ValueError):
    """Base class for errors raised synchronously by attach."""


class InvalidIdAttributeError(HistoryConfigError):
    """id_attr does not name an attribute of the source model."""

    def __init__(self, model_name: str, id_attr: str):
        super().__init__(f"Invalid id attribute for model {model_name}: {id_attr}")
        self.model_name = model_name
        self.id_attr = id_attr


class UnknownTrackedFieldError(HistoryConfigError):
    """A tracked field is not an attribute of the source model."""

    def __init__(self, model_name: str, fields: list[str]):
        super().__init__(
            f"Unknown tracked fields for model {model_name}: {', '.join(fields)}"
        )
        self.model_name = model_name
        self.fields = fields


class FieldCollisionError(HistoryConfigError):
    """A tracked field collides with a name the history model reserves."""

    def __init__(self, model_name: str, fields: list[str]):
        super().__init__(
            f"Tracked fields of {model_name} collide with history attributes: "
            f"{', '.join(fields)}"
        )
        self.model_name = model_name
        self.fields = fields
