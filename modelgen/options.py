"""
Custom option registry.

modelgen understands a small set of custom options. Each of them is a
string-valued protobuf extension of one of the descriptor option messages
(FileOptions, MessageOptions or FieldOptions).

At protoc plugin time the extensions are usually not registered with the
Python protobuf runtime, so their values are kept as unknown fields of the
options message. The registry reads them either way:

1. From a resolved extension with a matching name (runtime way).
2. By re-parsing the options message against a private descriptor pool in
   which every registered option is declared as a string extension, then
   reading ``Extensions[...]`` (compile time way).

Besides the known options, the registry holds the custom names configured
for the enrichment options (``--by-option ref``). Such a name takes the
scope of the option it stands for and needs an explicit field number.

Option names outside the registry resolve to "absent" instead of failing,
so configuration may mention options unknown to the current pass.
"""

import re
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from google.protobuf import descriptor_pb2, message_factory
from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from .errors import ConfigurationError

# =============================================================================
# OPTION SCOPES AND NUMBERS
# =============================================================================

SCOPE_FILE = 'file'
SCOPE_MESSAGE = 'message'
SCOPE_FIELD = 'field'

# Descriptor options message extended by the options of each scope.
OPTIONS_TYPES = {
    SCOPE_FILE: 'google.protobuf.FileOptions',
    SCOPE_MESSAGE: 'google.protobuf.MessageOptions',
    SCOPE_FIELD: 'google.protobuf.FieldOptions',
}


class KnownOption(Enum):
    """Supported custom options and the descriptor element they annotate."""
    IS = ('is', SCOPE_MESSAGE)
    EVERY_IS = ('every_is', SCOPE_FILE)
    BY = ('by', SCOPE_FIELD)
    ENRICHMENT_FOR = ('enrichment_for', SCOPE_MESSAGE)
    ENRICHMENT = ('enrichment', SCOPE_MESSAGE)

    def __init__(self, option_name: str, scope: str):
        self.option_name = option_name
        self.scope = scope


# Extension field numbers used when no override is configured.
DEFAULT_OPTION_NUMBERS: Dict[str, int] = {
    'is': 73852,
    'every_is': 73853,
    'by': 73854,
    'enrichment_for': 73855,
    'enrichment': 73856,
}

_BY_NAME: Dict[str, KnownOption] = {o.option_name: o for o in KnownOption}

# Extension ranges of the descriptor options messages.
MIN_OPTION_NUMBER = 1000
MAX_OPTION_NUMBER = FieldDescriptor.MAX_FIELD_NUMBER
_RESERVED_NUMBERS = range(FieldDescriptor.FIRST_RESERVED_FIELD_NUMBER,
                          FieldDescriptor.LAST_RESERVED_FIELD_NUMBER + 1)

_OPTION_NAME = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

# Package of the declared extensions; one sub-package per scope.
OPTIONS_PACKAGE = 'modelgen'


def _resolved_value(options: Message, option_name: str) -> Optional[str]:
    for field_desc, value in options.ListFields():
        if field_desc.is_extension and field_desc.name == option_name and isinstance(value, str):
            return value
    return None


def _check_number(name: str, number) -> int:
    if (not isinstance(number, int) or isinstance(number, bool)
            or not MIN_OPTION_NUMBER <= number <= MAX_OPTION_NUMBER
            or number in _RESERVED_NUMBERS):
        raise ConfigurationError(
            f'Invalid field number `{number}` for custom option `{name}`, '
            f'expected {MIN_OPTION_NUMBER}..{MAX_OPTION_NUMBER}')
    return number


def _options_file(scope: str, options: Mapping[str, int]) -> descriptor_pb2.FileDescriptorProto:
    """Declare ``options`` as string extensions of the options message of ``scope``."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=f'{OPTIONS_PACKAGE}/{scope}_options.proto',
        package=f'{OPTIONS_PACKAGE}.{scope}',
        dependency=[descriptor_pb2.DESCRIPTOR.name],
        syntax='proto2',
    )
    for name, number in sorted(options.items()):
        file_proto.extension.add(
            name=name,
            number=number,
            label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
            type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
            extendee='.' + OPTIONS_TYPES[scope],
        )
    return file_proto

# =============================================================================
# REGISTRY
# =============================================================================


class OptionRegistry:
    """
    Resolves custom option values from descriptor option messages.

    The registry holds no state apart from the options it is created with,
    so one instance is built per generation pass and shared.

    Args:
        numbers: Field number per option name. Overrides the default number
            of a known option, or numbers a custom name from ``names``.
        names: Configured name per known option. A name other than the
            option's own is registered with the scope of that option.

    Raises:
        ConfigurationError: on a number for an unregistered name, a custom
            name without a number, an invalid name or number, or two options
            of one scope sharing a number.
    """

    def __init__(self, numbers: Optional[Mapping[str, int]] = None,
                 names: Optional[Mapping[KnownOption, str]] = None):
        numbers = dict(numbers or {})
        scoped: Dict[str, Dict[str, int]] = {scope: {} for scope in OPTIONS_TYPES}
        for option in KnownOption:
            scoped[option.scope][option.option_name] = DEFAULT_OPTION_NUMBERS[option.option_name]

        custom: Dict[str, str] = {}
        for option, name in (names or {}).items():
            known = self.lookup(name)
            if known is not None:
                if known.scope != option.scope:
                    raise ConfigurationError(
                        f'Option `{name}` annotates a {known.scope}, '
                        f'it cannot be used as `{option.option_name}`')
                continue
            if not _OPTION_NAME.fullmatch(name or ''):
                raise ConfigurationError(f'Invalid custom option name `{name}`')
            if name not in numbers:
                raise ConfigurationError(
                    f'Custom option `{name}` needs a field number: '
                    f'--option-number {name}=NUMBER')
            custom[name] = option.scope

        for name, number in numbers.items():
            known = self.lookup(name)
            if known is not None:
                scope = known.scope
            elif name in custom:
                scope = custom[name]
            else:
                raise ConfigurationError(f'Unknown custom option `{name}`')
            scoped[scope][name] = _check_number(name, number)

        for scope, options in scoped.items():
            owners: Dict[int, str] = {}
            for name, number in sorted(options.items()):
                if number in owners:
                    raise ConfigurationError(
                        f'Custom options `{owners[number]}` and `{name}` '
                        f'share field number {number}')
                owners[number] = name
        self._scoped = scoped

        files = [descriptor_pb2.FileDescriptorProto()]
        descriptor_pb2.DESCRIPTOR.CopyToProto(files[0])
        files.extend(_options_file(scope, options) for scope, options in scoped.items())
        self._classes = message_factory.GetMessages(files)

    @staticmethod
    def lookup(name: str) -> Optional[KnownOption]:
        """Return the known option with the given name, or None."""
        return _BY_NAME.get(name)

    def number(self, option: KnownOption) -> int:
        return self._scoped[option.scope][option.option_name]

    def names(self, scope: str) -> Tuple[str, ...]:
        """Names of all options registered for ``scope``."""
        return tuple(sorted(self._scoped[scope]))

    def options_class(self, scope: str):
        """Options message class of ``scope`` which knows the registered extensions."""
        return self._classes[OPTIONS_TYPES[scope]]

    def extension(self, scope: str, name: str) -> FieldDescriptor:
        """
        Extension declared for option ``name`` of ``scope``.

        Raises:
            KeyError: if no such option is registered.
        """
        if name not in self._scoped[scope]:
            raise KeyError(f'No custom {scope} option `{name}`')
        extended = self.options_class(scope).DESCRIPTOR
        return extended.file.pool.FindExtensionByName(f'{OPTIONS_PACKAGE}.{scope}.{name}')

    def _parse(self, options: Message, scope: str) -> Message:
        return self.options_class(scope).FromString(options.SerializeToString())

    def _read(self, options: Message, parsed: Message, scope: str, name: str) -> Optional[str]:
        value = _resolved_value(options, name)
        if not value:
            extension = self.extension(scope, name)
            if parsed.HasExtension(extension):
                value = parsed.Extensions[extension]
        return value or None

    def value(self, options: Optional[Message], option: KnownOption) -> Optional[str]:
        """Return the non-empty value of the option, or None when absent."""
        if options is None:
            return None
        return self._read(options, self._parse(options, option.scope),
                          option.scope, option.option_name)

    def collect(self, options: Optional[Message], scope: str) -> Dict[str, str]:
        """Return all registered options of ``scope`` set to a non-default value."""
        if options is None:
            return {}
        parsed = self._parse(options, scope)
        result: Dict[str, str] = {}
        for name in self.names(scope):
            value = self._read(options, parsed, scope, name)
            if value:
                result[name] = value
        return result
