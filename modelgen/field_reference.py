"""
Parsing of ``(by)`` field option values.

A ``(by)`` value lists one or more references to fields of other messages,
separated by ``|``::

    string user_name = 1 [(by) = "acme.UserCreated.name|acme.UserRenamed.name"];

Each reference is ``<type>.<field>``. The type part may be the wildcard
``*`` ("any type", resolved elsewhere), which is only legal when it is the
only reference. A reference without a type part points at a field of a type
nested into the enclosing message.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import InvalidOptionUsage, InvalidOptionValue

REFERENCE_SEPARATOR = '|'
TYPE_SEPARATOR = '.'
WILDCARD = '*'


@dataclass(frozen=True)
class FieldReference:
    """One reference parsed from a ``(by)`` option value."""
    raw: str
    is_wildcard: bool
    has_explicit_type: bool
    type_name: Optional[str]
    field_name: str

    @property
    def is_inner(self) -> bool:
        """True for the short form referencing a nested type of the enclosing message."""
        return not self.has_explicit_type

    @classmethod
    def parse(cls, raw: str, message_name: str = '') -> 'FieldReference':
        segment = raw.strip()
        is_wildcard = segment.startswith(WILDCARD)
        index = segment.rfind(TYPE_SEPARATOR)
        if index < 0:
            if not segment:
                raise InvalidOptionValue(message_name, 'Empty field reference.')
            return cls(raw, is_wildcard, False, None, segment)
        type_name = segment[:index].strip()
        field_name = segment[index + 1:].strip()
        if not type_name:
            raise InvalidOptionValue(message_name, f'No type in reference `{raw}`.')
        if not field_name:
            raise InvalidOptionValue(message_name, f'No field in reference `{raw}`.')
        if is_wildcard and type_name.split(TYPE_SEPARATOR)[0] != WILDCARD:
            raise InvalidOptionValue(
                message_name,
                f'Wildcard references with a suffix (`{type_name}`) are not supported; '
                "use '*.<field_name>'.")
        return cls(raw, is_wildcard, True, type_name, field_name)


def parse_references(option_value: str, field_name: str = '',
                     message_name: str = '') -> List[FieldReference]:
    """
    Parse all references of a ``(by)`` option value.

    Args:
        option_value: The raw option value.
        field_name: Name of the annotated field, used in error messages.
        message_name: Name of the declaring message, used in error messages.

    Returns:
        The references in declaration order, inner references included.

    Raises:
        InvalidOptionUsage: a wildcard reference is combined with other references.
        InvalidOptionValue: a reference has a blank type or field name.
    """
    if REFERENCE_SEPARATOR in option_value:
        segments = option_value.split(REFERENCE_SEPARATOR)
    else:
        segments = [option_value]
    if len(segments) > 1 and any(s.strip().startswith(WILDCARD) for s in segments):
        raise InvalidOptionUsage(field_name or message_name)
    return [FieldReference.parse(segment, message_name) for segment in segments]


def referenced_type_names(references: Iterable[FieldReference]) -> List[str]:
    """Type names of the qualified references; inner references are skipped."""
    return [r.type_name for r in references if r.has_explicit_type]
