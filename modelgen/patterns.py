"""
File-name patterns and type filters.

A TypeFilter decides whether a generation rule applies to a type. Filters
form a closed set of variants:

- FileNameMatches: the declaring file name matches a Pattern
  (postfix, prefix or full-match regex).
- HasOption: the type carries a non-default value of a custom option.
- FileHasOption: the declaring file carries a custom option.
- IsIdentifierShaped: the type has exactly one field, a string named ``uuid``.
- TopLevelOnly: the type is not nested, and the inner filter matches.
- AnyOf / AllOf / Not: composition.

Filters are immutable and pure: evaluating the same filter twice on the same
TypeModel yields the same result. Malformed filters (empty pattern, invalid
regex, blank option name) are rejected when constructed.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from google.protobuf import descriptor_pb2

from .errors import ConfigurationError
from .type_model import TypeModel

IDENTIFIER_FIELD_NAME = 'uuid'


class PatternKind(Enum):
    POSTFIX = 'postfix'
    PREFIX = 'prefix'
    REGEX = 'regex'


@dataclass(frozen=True)
class Pattern:
    """A predicate over a file name. Equality is by kind and value."""
    kind: PatternKind
    value: str
    _regex: Optional[re.Pattern] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ConfigurationError(f'Empty {self.kind.value} file pattern')
        compiled = None
        if self.kind is PatternKind.REGEX:
            try:
                compiled = re.compile(self.value)
            except re.error as e:
                raise ConfigurationError(
                    f'Invalid file name regex `{self.value}`: {e}') from e
        object.__setattr__(self, '_regex', compiled)

    @classmethod
    def postfix(cls, value: str) -> 'Pattern':
        return cls(PatternKind.POSTFIX, value)

    @classmethod
    def prefix(cls, value: str) -> 'Pattern':
        return cls(PatternKind.PREFIX, value)

    @classmethod
    def regex(cls, value: str) -> 'Pattern':
        return cls(PatternKind.REGEX, value)

    def matches(self, file_name: str) -> bool:
        if self.kind is PatternKind.POSTFIX:
            return file_name.endswith(self.value)
        if self.kind is PatternKind.PREFIX:
            return file_name.startswith(self.value)
        return self._regex.fullmatch(file_name) is not None


# =============================================================================
# TYPE FILTERS
# =============================================================================

class TypeFilter:
    """Base of the filter variants; see ``matches()``."""

    def matches(self, type_model: TypeModel) -> bool:
        return matches(self, type_model)


@dataclass(frozen=True)
class FileNameMatches(TypeFilter):
    pattern: Pattern


@dataclass(frozen=True)
class HasOption(TypeFilter):
    option_name: str

    def __post_init__(self):
        if not self.option_name or not self.option_name.strip():
            raise ConfigurationError('Option filter requires an option name')


@dataclass(frozen=True)
class FileHasOption(TypeFilter):
    option_name: str

    def __post_init__(self):
        if not self.option_name or not self.option_name.strip():
            raise ConfigurationError('File option filter requires an option name')


@dataclass(frozen=True)
class IsIdentifierShaped(TypeFilter):
    pass


@dataclass(frozen=True)
class TopLevelOnly(TypeFilter):
    inner: TypeFilter


@dataclass(frozen=True)
class AnyOf(TypeFilter):
    filters: Tuple[TypeFilter, ...]

    def __post_init__(self):
        if not self.filters:
            raise ConfigurationError('AnyOf requires at least one filter')
        object.__setattr__(self, 'filters', tuple(self.filters))


@dataclass(frozen=True)
class AllOf(TypeFilter):
    filters: Tuple[TypeFilter, ...]

    def __post_init__(self):
        if not self.filters:
            raise ConfigurationError('AllOf requires at least one filter')
        object.__setattr__(self, 'filters', tuple(self.filters))


@dataclass(frozen=True)
class Not(TypeFilter):
    inner: TypeFilter


def is_identifier_shaped(type_model: TypeModel) -> bool:
    """True iff the type has exactly one field: a singular string named ``uuid``."""
    if len(type_model.fields) != 1:
        return False
    only = type_model.fields[0]
    return (only.name == IDENTIFIER_FIELD_NAME
            and only.type == descriptor_pb2.FieldDescriptorProto.TYPE_STRING
            and not only.is_repeated())


def matches(type_filter: TypeFilter, type_model: TypeModel) -> bool:
    """
    Evaluate a filter against a type.

    Never raises for a well-formed TypeModel. Options unknown to the current
    pass evaluate to False.
    """
    if isinstance(type_filter, FileNameMatches):
        return type_filter.pattern.matches(type_model.file_name)
    if isinstance(type_filter, HasOption):
        return type_model.has_option(type_filter.option_name)
    if isinstance(type_filter, FileHasOption):
        return type_model.file_option(type_filter.option_name) is not None
    if isinstance(type_filter, IsIdentifierShaped):
        return is_identifier_shaped(type_model)
    if isinstance(type_filter, TopLevelOnly):
        return type_model.is_top_level and matches(type_filter.inner, type_model)
    if isinstance(type_filter, AnyOf):
        return any(matches(f, type_model) for f in type_filter.filters)
    if isinstance(type_filter, AllOf):
        return all(matches(f, type_model) for f in type_filter.filters)
    if isinstance(type_filter, Not):
        return not matches(type_filter.inner, type_model)
    raise TypeError(f'Unsupported type filter: {type_filter!r}')
