"""
Pytest configuration and shared fixtures for modelgen tests.

Descriptors are built in memory with descriptor_pb2, no protoc binary is
needed. Custom options are set as extensions and stored as unknown fields of the
plain options messages, which is how protoc hands them to a plugin that
does not register the extensions.

Key helpers:
    - file_descriptor / message_descriptor / field_descriptor build descriptors
    - code_generator_request wraps them the way protoc does
    - make_type / string_field build TypeModels directly
"""

from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence

import pytest
from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from modelgen.options import SCOPE_FIELD, SCOPE_FILE, SCOPE_MESSAGE, OptionRegistry
from modelgen.type_model import FieldModel, TypeKind, TypeModel

FieldDescriptorProto = descriptor_pb2.FieldDescriptorProto

SCOPES = {
    descriptor_pb2.FileOptions: SCOPE_FILE,
    descriptor_pb2.MessageOptions: SCOPE_MESSAGE,
    descriptor_pb2.FieldOptions: SCOPE_FIELD,
}

DEFAULT_REGISTRY = OptionRegistry()


# =============================================================================
# Path Constants
# =============================================================================

# Repository root directory
REPO_ROOT = Path(__file__).parent.parent.absolute()


# =============================================================================
# Descriptor Builders
# =============================================================================

def custom_options(options_type, values: Optional[Mapping[str, str]],
                   registry: Optional[OptionRegistry] = None):
    """
    Build an options message carrying custom string options.

    The values are set through ``Extensions[...]`` on the registry's own
    options class, then copied into a plain descriptor_pb2 message, where
    they end up as unknown fields.

    Args:
        options_type: FileOptions, MessageOptions or FieldOptions.
        values: Option name -> value.
        registry: Registry declaring the options; the default one if omitted.

    Returns:
        The options message, or None when there is nothing to set.
    """
    if not values:
        return None
    registry = registry or DEFAULT_REGISTRY
    scope = SCOPES[options_type]
    extended = registry.options_class(scope)()
    for name, value in values.items():
        extended.Extensions[registry.extension(scope, name)] = value
    return options_type.FromString(extended.SerializeToString())


def field_descriptor(
    name: str,
    number: int = 1,
    type: int = FieldDescriptorProto.TYPE_STRING,
    label: int = FieldDescriptorProto.LABEL_OPTIONAL,
    type_name: str = '',
    options: Optional[Mapping[str, str]] = None,
    registry: Optional[OptionRegistry] = None,
) -> FieldDescriptorProto:
    field = FieldDescriptorProto(name=name, number=number, type=type, label=label)
    if type_name:
        field.type_name = type_name
    opts = custom_options(descriptor_pb2.FieldOptions, options, registry)
    if opts is not None:
        field.options.CopyFrom(opts)
    return field


def message_descriptor(
    name: str,
    fields: Sequence[FieldDescriptorProto] = (),
    options: Optional[Mapping[str, str]] = None,
    nested: Sequence[descriptor_pb2.DescriptorProto] = (),
    enums: Sequence[str] = (),
) -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name=name)
    message.field.extend(fields)
    message.nested_type.extend(nested)
    for enum_name in enums:
        message.enum_type.add(name=enum_name).value.add(name=f'{enum_name.upper()}_UNKNOWN',
                                                         number=0)
    opts = custom_options(descriptor_pb2.MessageOptions, options)
    if opts is not None:
        message.options.CopyFrom(opts)
    return message


def file_descriptor(
    name: str,
    package: str = 'acme',
    messages: Sequence[descriptor_pb2.DescriptorProto] = (),
    enums: Sequence[str] = (),
    services: Sequence[str] = (),
    options: Optional[Mapping[str, str]] = None,
    java_package: str = '',
    java_outer_classname: str = '',
    java_multiple_files: bool = False,
) -> descriptor_pb2.FileDescriptorProto:
    file_desc = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax='proto3')
    file_desc.message_type.extend(messages)
    for enum_name in enums:
        file_desc.enum_type.add(name=enum_name).value.add(name=f'{enum_name.upper()}_UNKNOWN',
                                                          number=0)
    for service_name in services:
        file_desc.service.add(name=service_name)
    opts = custom_options(descriptor_pb2.FileOptions, options) or descriptor_pb2.FileOptions()
    if java_package:
        opts.java_package = java_package
    if java_outer_classname:
        opts.java_outer_classname = java_outer_classname
    if java_multiple_files:
        opts.java_multiple_files = True
    if opts.ByteSize():
        file_desc.options.CopyFrom(opts)
    return file_desc


def code_generator_request(
    files: Iterable[descriptor_pb2.FileDescriptorProto],
    to_generate: Optional[Iterable[str]] = None,
    parameter: str = '',
    major: Optional[int] = 3,
) -> plugin_pb2.CodeGeneratorRequest:
    """Wrap descriptors into a request; all files are generated by default."""
    files = list(files)
    request = plugin_pb2.CodeGeneratorRequest()
    request.proto_file.extend(files)
    request.file_to_generate.extend(
        to_generate if to_generate is not None else [f.name for f in files])
    if parameter:
        request.parameter = parameter
    if major is not None:
        request.compiler_version.major = major
        request.compiler_version.minor = 21
    return request


def descriptor_set_bytes(files: Iterable[descriptor_pb2.FileDescriptorProto]) -> bytes:
    file_set = descriptor_pb2.FileDescriptorSet()
    file_set.file.extend(files)
    return file_set.SerializeToString()


# =============================================================================
# TypeModel Builders
# =============================================================================

def string_field(name: str, repeated: bool = False, **options) -> FieldModel:
    label = FieldDescriptorProto.LABEL_REPEATED if repeated else FieldDescriptorProto.LABEL_OPTIONAL
    return FieldModel(name=name, label=label, options=dict(options))


def make_type(
    name: str = 'Sample',
    file_name: str = 'acme/sample.proto',
    package: str = 'acme',
    fields: Sequence[FieldModel] = (),
    options: Optional[Dict[str, str]] = None,
    file_options: Optional[Dict[str, str]] = None,
    **kwargs
) -> TypeModel:
    """Build a message TypeModel without going through descriptors."""
    kwargs.setdefault('kind', TypeKind.MESSAGE)
    return TypeModel(
        name=name,
        file_name=file_name,
        package=package,
        fields=tuple(fields),
        options=dict(options or {}),
        file_options=dict(file_options or {}),
        **kwargs
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def repo_root() -> Path:
    """Return the repository root directory."""
    return REPO_ROOT


@pytest.fixture
def events_file() -> descriptor_pb2.FileDescriptorProto:
    """``acme/events.proto`` declaring OrderPlaced and OrderCancelled."""
    return file_descriptor(
        'acme/events.proto',
        java_package='com.acme.events',
        java_multiple_files=True,
        messages=[
            message_descriptor('OrderPlaced', [field_descriptor('order_id')]),
            message_descriptor('OrderCancelled', [field_descriptor('order_id'),
                                                  field_descriptor('reason', 2)]),
        ],
    )


@pytest.fixture
def identifiers_file() -> descriptor_pb2.FileDescriptorProto:
    """``acme/identifiers.proto``: UserId is identifier-shaped, OrderId is not."""
    return file_descriptor(
        'acme/identifiers.proto',
        java_package='com.acme',
        messages=[
            message_descriptor('UserId', [field_descriptor('uuid')]),
            message_descriptor('OrderId', [field_descriptor('uuid'),
                                           field_descriptor('shard', 2,
                                                            FieldDescriptorProto.TYPE_INT32)]),
        ],
    )


@pytest.fixture
def enrichment_file() -> descriptor_pb2.FileDescriptorProto:
    """``acme/enrichments.proto`` using all three enrichment declaration styles."""
    return file_descriptor(
        'acme/enrichments.proto',
        messages=[
            message_descriptor('UserNameEnrichment', [field_descriptor('name')],
                               options={'enrichment_for': 'UserCreated,UserRenamed'}),
            message_descriptor('OrderEnrichment', [
                field_descriptor('customer', options={'by': 'acme.OrderPlaced.customer_id'}),
            ]),
            message_descriptor('ProjectCreated', [field_descriptor('project_id')], nested=[
                message_descriptor('Details', [
                    field_descriptor('owner', options={'by': 'acme.Owner.name'}),
                ]),
            ]),
        ],
    )


@pytest.fixture
def descriptor_set_path(tmp_path: Path, events_file, identifiers_file, enrichment_file) -> Path:
    """A binary descriptor set on disk holding all sample files."""
    path = tmp_path / "acme.desc"
    path.write_bytes(descriptor_set_bytes([events_file, identifiers_file, enrichment_file]))
    return path


# =============================================================================
# Pytest Markers
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "generator: marks tests related to code generation"
    )
    config.addinivalue_line(
        "markers", "enrichment: marks tests related to the enrichment map"
    )
    config.addinivalue_line(
        "markers", "plugin: marks tests driving the protoc plugin protocol"
    )
    config.addinivalue_line(
        "markers", "integration: marks end-to-end tests"
    )
