"""
Artifacts produced by the generation tasks.

A CompilerOutput is either a NewFile (a source file that does not exist yet)
or a Patch (text protoc splices into a file it has already generated, right
before an insertion point marker). Both are immutable and compare
structurally, which lets the pipeline drop exact duplicates and nothing else.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from google.protobuf.compiler import plugin_pb2

INSERTION_POINT_MARKER = '// @@protoc_insertion_point({})'


class InsertionKind(Enum):
    """Insertion points protoc's Java generator places into every message class."""
    MESSAGE_IMPLEMENTS = 'message_implements'
    BUILDER_IMPLEMENTS = 'builder_implements'
    CLASS_SCOPE = 'class_scope'
    BUILDER_SCOPE = 'builder_scope'


def insertion_point_key(kind: InsertionKind, type_name: str) -> str:
    """
    Key of the insertion point of the given kind for a type.

    Args:
        kind: The insertion point kind.
        type_name: Fully-qualified protobuf name of the type (no leading dot).

    Returns:
        The key, e.g. ``message_implements:my.package.OrderPlaced``.
    """
    return f'{kind.value}:{type_name.lstrip(".")}'


def insertion_point_marker(key: str) -> str:
    """The marker line protoc places into generated files for ``key``."""
    return INSERTION_POINT_MARKER.format(key)


class CompilerOutput:
    """Base of the output variants."""

    def as_file(self) -> plugin_pb2.CodeGeneratorResponse.File:
        raise NotImplementedError


@dataclass(frozen=True)
class NewFile(CompilerOutput):
    path: str
    content: str

    def as_file(self) -> plugin_pb2.CodeGeneratorResponse.File:
        return plugin_pb2.CodeGeneratorResponse.File(name=self.path, content=self.content)


@dataclass(frozen=True)
class Patch(CompilerOutput):
    target_file: str
    insertion_point_key: str
    content: str

    @classmethod
    def at(cls, target_file: str, kind: InsertionKind, type_name: str,
           content: str) -> 'Patch':
        return cls(target_file, insertion_point_key(kind, type_name), content)

    @property
    def marker(self) -> str:
        return insertion_point_marker(self.insertion_point_key)

    def as_file(self) -> plugin_pb2.CodeGeneratorResponse.File:
        return plugin_pb2.CodeGeneratorResponse.File(
            name=self.target_file,
            insertion_point=self.insertion_point_key,
            content=self.content,
        )


def deduplicate(outputs: Iterable[CompilerOutput]) -> List[CompilerOutput]:
    """Drop exact duplicates, keeping the first occurrence and the original order."""
    seen = set()
    result = []
    for output in outputs:
        if output in seen:
            continue
        seen.add(output)
        result.append(output)
    return result
