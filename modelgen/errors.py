"""
Exception types raised by modelgen.

Configuration errors are detected while tasks and filters are constructed,
before any type is processed. Option errors are raised while a message is
scanned for field references and abort processing of that message.
"""

from typing import Optional


class ModelgenError(Exception):
    """Base class for all modelgen errors."""


class ConfigurationError(ModelgenError, ValueError):
    """A generation rule or setting is malformed (bad pattern, blank target, ...)."""


class InvalidOptionUsage(ModelgenError, ValueError):
    """A wildcard field reference is combined with other references."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(
            f"Field `{field_name}` has invalid 'by' option value. "
            "Wildcard type is not allowed with multiple arguments. "
            "Specify the type either with `by` or with `enrichment_for` option."
        )


class InvalidOptionValue(ModelgenError, ValueError):
    """A field reference resolves to a blank type name."""

    def __init__(self, message_name: str, detail: Optional[str] = None):
        self.message_name = message_name
        text = (f"The message `{message_name}` has invalid 'by' option value, "
                "which must be a fully-qualified field reference.")
        if detail:
            text += ' ' + detail
        super().__init__(text)


class GenerationError(ModelgenError, RuntimeError):
    """A generation task failed while producing output for one type."""

    def __init__(self, type_name: str, output_name: str, cause: BaseException):
        self.type_name = type_name
        self.output_name = output_name
        self.cause = cause
        super().__init__(
            f"Failed to generate `{output_name}` output for `{type_name}`: {cause}"
        )
