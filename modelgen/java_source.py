"""
Minimal Java source snippets emitted by the generation tasks.

Only the text that has to be spliced into, or written next to, the Java
classes produced by protoc lives here.
"""

GENERATED_BY = 'by modelgen'
PACKAGE_DELIMITER = '.'


def source_path(java_package: str, class_name: str) -> str:
    """Return the path of the ``.java`` file declaring a top-level class."""
    qualified = f'{java_package}.{class_name}' if java_package else class_name
    return qualified.replace(PACKAGE_DELIMITER, '/') + '.java'


def split_qualified_name(qualified_name: str):
    """Split ``a.b.Name`` into (``a.b``, ``Name``); the package may be empty."""
    package, _, name = qualified_name.rpartition(PACKAGE_DELIMITER)
    return package, name


def implements_clause(interface_name: str) -> str:
    """Content for a ``message_implements`` insertion point."""
    return interface_name + ','


def marker_interface(java_package: str, name: str) -> str:
    """Source of a marker interface extending the protobuf ``Message``."""
    lines = ['// Generated ' + GENERATED_BY + '. DO NOT EDIT!']
    if java_package:
        lines.append(f'package {java_package};')
    lines.extend([
        '',
        f'@javax.annotation.Generated("{GENERATED_BY}")',
        f'public interface {name} extends com.google.protobuf.Message {{',
        '}',
        '',
    ])
    return '\n'.join(lines)


def uuid_factory_methods(class_name: str) -> str:
    """Static factory methods for a message holding a single ``uuid`` string."""
    return (
        '\n'
        '    /**\n'
        f'     * Creates a new {{@code {class_name}}} with a random UUID value.\n'
        '     */\n'
        f'    public static {class_name} generate() {{\n'
        '        return newBuilder().setUuid(java.util.UUID.randomUUID().toString()).build();\n'
        '    }\n'
        '\n'
        '    /**\n'
        f'     * Creates a new {{@code {class_name}}} with the passed value.\n'
        '     */\n'
        f'    public static {class_name} of(java.lang.String uuid) {{\n'
        '        return newBuilder().setUuid(uuid).build();\n'
        '    }\n'
    )
