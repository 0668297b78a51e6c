"""
Read-only model of the types declared in parsed .proto files.

The generation engine never looks at raw descriptors. Every declared
message, enum and service is converted once into a TypeModel: name,
declaring file, fields, nesting and the values of the supported custom
options. TypeSet builds these models from FileDescriptorProto objects, a
CodeGeneratorRequest or a binary FileDescriptorSet.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from . import java_source
from .options import SCOPE_FIELD, SCOPE_FILE, SCOPE_MESSAGE, OptionRegistry

FieldDescriptorProto = descriptor_pb2.FieldDescriptorProto

TYPE_SEPARATOR = '.'


class TypeKind(Enum):
    """Kind of a declared type."""
    MESSAGE = 'message'
    ENUM = 'enum'
    SERVICE = 'service'


@dataclass(frozen=True)
class FieldModel:
    """A message field with the custom options declared on it."""
    name: str
    type: int = FieldDescriptorProto.TYPE_STRING
    type_name: str = ''
    label: int = FieldDescriptorProto.LABEL_OPTIONAL
    options: Mapping[str, str] = field(default_factory=dict)

    def is_string(self) -> bool:
        return self.type == FieldDescriptorProto.TYPE_STRING

    def is_repeated(self) -> bool:
        return self.label == FieldDescriptorProto.LABEL_REPEATED

    def option(self, name: str) -> Optional[str]:
        return (self.options or {}).get(name) or None


@dataclass(frozen=True)
class TypeModel:
    """
    A declared message, enum or service.

    Attributes:
        name: Simple name of the type.
        file_name: Name of the declaring .proto file, as given to protoc.
        package: Protobuf package of the declaring file.
        kind: Message, enum or service.
        fields: Declared fields (messages only).
        nested_types: First-level nested messages (messages only).
        enclosing: Names of the enclosing messages, outermost first.
        options: Supported custom options set on the type itself.
        file_options: Supported custom options set on the declaring file.
        java_package: ``java_package`` file option, may be empty.
        java_outer_classname: Resolved Java outer class name of the file.
        java_multiple_files: ``java_multiple_files`` file option.
    """
    name: str
    file_name: str
    package: str = ''
    kind: TypeKind = TypeKind.MESSAGE
    fields: Tuple[FieldModel, ...] = ()
    nested_types: Tuple['TypeModel', ...] = ()
    enclosing: Tuple[str, ...] = ()
    options: Mapping[str, str] = field(default_factory=dict)
    file_options: Mapping[str, str] = field(default_factory=dict)
    java_package: str = ''
    java_outer_classname: str = ''
    java_multiple_files: bool = False

    @property
    def full_name(self) -> str:
        """Fully-qualified protobuf name, without the leading dot."""
        return TYPE_SEPARATOR.join(p for p in (self.package, *self.enclosing, self.name) if p)

    @property
    def is_top_level(self) -> bool:
        return not self.enclosing

    def option(self, name: str) -> Optional[str]:
        return (self.options or {}).get(name) or None

    def has_option(self, name: str) -> bool:
        return self.option(name) is not None

    def file_option(self, name: str) -> Optional[str]:
        return (self.file_options or {}).get(name) or None

    def java_package_name(self) -> str:
        return self.java_package or self.package

    def outer_class_name(self) -> str:
        return self.java_outer_classname or camel_case_file_name(self.file_name)

    def java_class_name(self) -> str:
        """Fully-qualified name of the Java class generated for the type."""
        parts = [self.java_package_name()]
        if not self.java_multiple_files:
            parts.append(self.outer_class_name())
        parts.extend(self.enclosing)
        parts.append(self.name)
        return '.'.join(p for p in parts if p)

    def java_source_file(self) -> str:
        """Path of the Java file protoc generates the type into."""
        if self.java_multiple_files:
            top_level = self.enclosing[0] if self.enclosing else self.name
        else:
            top_level = self.outer_class_name()
        return java_source.source_path(self.java_package_name(), top_level)


# =============================================================================
# JAVA NAMING
# =============================================================================

def _underscores_to_camel_case(text: str) -> str:
    result = []
    cap_next = True
    for ch in text:
        if 'a' <= ch <= 'z':
            result.append(ch.upper() if cap_next else ch)
            cap_next = False
        elif 'A' <= ch <= 'Z':
            result.append(ch)
            cap_next = False
        elif '0' <= ch <= '9':
            result.append(ch)
            cap_next = True
        else:
            cap_next = True
    return ''.join(result)


def camel_case_file_name(file_name: str) -> str:
    """``foo/order_events.proto`` -> ``OrderEvents``."""
    base = file_name.rsplit('/', 1)[-1]
    if base.endswith('.proto'):
        base = base[:-len('.proto')]
    return _underscores_to_camel_case(base)


def resolve_outer_class_name(file_desc: descriptor_pb2.FileDescriptorProto) -> str:
    """Resolve the Java outer class name the way protoc does."""
    if file_desc.options.java_outer_classname:
        return file_desc.options.java_outer_classname
    name = camel_case_file_name(file_desc.name)
    declared = {m.name for m in file_desc.message_type}
    declared.update(e.name for e in file_desc.enum_type)
    declared.update(s.name for s in file_desc.service)
    if name in declared:
        name += 'OuterClass'
    return name


# =============================================================================
# DESCRIPTOR ADAPTER
# =============================================================================

def _options_of(desc) -> Optional[object]:
    return desc.options if desc.HasField('options') else None


def _field_model(field_desc: FieldDescriptorProto, registry: OptionRegistry) -> FieldModel:
    return FieldModel(
        name=field_desc.name,
        type=field_desc.type,
        type_name=field_desc.type_name.lstrip('.'),
        label=field_desc.label,
        options=registry.collect(_options_of(field_desc), SCOPE_FIELD),
    )


def _message_model(msg: descriptor_pb2.DescriptorProto, enclosing: Tuple[str, ...],
                   common: Dict, registry: OptionRegistry) -> TypeModel:
    inner = enclosing + (msg.name,)
    nested = tuple(
        _message_model(n, inner, common, registry)
        for n in msg.nested_type
        if not n.options.map_entry
    )
    return TypeModel(
        name=msg.name,
        kind=TypeKind.MESSAGE,
        fields=tuple(_field_model(f, registry) for f in msg.field),
        nested_types=nested,
        enclosing=enclosing,
        options=registry.collect(_options_of(msg), SCOPE_MESSAGE),
        **common
    )


def _flatten(model: TypeModel) -> Iterator[TypeModel]:
    yield model
    for nested in model.nested_types:
        yield from _flatten(nested)


def _nested_enums(msg: descriptor_pb2.DescriptorProto, enclosing: Tuple[str, ...],
                  common: Dict) -> Iterator[TypeModel]:
    inner = enclosing + (msg.name,)
    for enum in msg.enum_type:
        yield TypeModel(name=enum.name, kind=TypeKind.ENUM, enclosing=inner, **common)
    for nested in msg.nested_type:
        yield from _nested_enums(nested, inner, common)


def file_types(file_desc: descriptor_pb2.FileDescriptorProto,
               registry: OptionRegistry) -> List[TypeModel]:
    """All types declared in a file: messages (outer first), enums, services."""
    common = dict(
        file_name=file_desc.name,
        package=file_desc.package,
        file_options=registry.collect(_options_of(file_desc), SCOPE_FILE),
        java_package=file_desc.options.java_package,
        java_outer_classname=resolve_outer_class_name(file_desc),
        java_multiple_files=file_desc.options.java_multiple_files,
    )
    result: List[TypeModel] = []
    for msg in file_desc.message_type:
        result.extend(_flatten(_message_model(msg, (), common, registry)))
        result.extend(_nested_enums(msg, (), common))
    for enum in file_desc.enum_type:
        result.append(TypeModel(name=enum.name, kind=TypeKind.ENUM, **common))
    for service in file_desc.service:
        result.append(TypeModel(name=service.name, kind=TypeKind.SERVICE, **common))
    return result


class TypeSet:
    """An ordered collection of TypeModels built from one descriptor set."""

    def __init__(self, types: Iterable[TypeModel]):
        self._types = list(types)

    def __iter__(self) -> Iterator[TypeModel]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def messages(self) -> List[TypeModel]:
        return [t for t in self._types if t.kind is TypeKind.MESSAGE]

    def top_level_messages(self) -> List[TypeModel]:
        return [t for t in self.messages() if t.is_top_level]

    def find(self, full_name: str) -> Optional[TypeModel]:
        full_name = full_name.lstrip('.')
        for t in self._types:
            if t.full_name == full_name:
                return t
        return None

    @classmethod
    def from_files(cls, files: Iterable[descriptor_pb2.FileDescriptorProto],
                   registry: Optional[OptionRegistry] = None,
                   only: Optional[Iterable[str]] = None) -> 'TypeSet':
        """
        Build the set from file descriptors.

        Args:
            files: Parsed file descriptors, dependencies included.
            registry: Option registry; the default option numbers are used if omitted.
            only: If given, only types declared in these file names are included.
        """
        registry = registry or OptionRegistry()
        wanted = set(only) if only is not None else None
        types: List[TypeModel] = []
        for file_desc in files:
            if wanted is not None and file_desc.name not in wanted:
                continue
            types.extend(file_types(file_desc, registry))
        return cls(types)

    @classmethod
    def from_request(cls, request: plugin_pb2.CodeGeneratorRequest,
                     registry: Optional[OptionRegistry] = None) -> 'TypeSet':
        """Types of the files protoc asked the plugin to generate."""
        return cls.from_files(request.proto_file, registry, only=request.file_to_generate)

    @classmethod
    def from_descriptor_set(cls, data: Union[bytes, descriptor_pb2.FileDescriptorSet],
                            registry: Optional[OptionRegistry] = None,
                            only: Optional[Iterable[str]] = None) -> 'TypeSet':
        """Types of a binary FileDescriptorSet (``protoc --descriptor_set_out``)."""
        if isinstance(data, (bytes, bytearray)):
            file_set = descriptor_pb2.FileDescriptorSet()
            file_set.ParseFromString(bytes(data))
        else:
            file_set = data
        return cls.from_files(file_set.file, registry, only=only)
