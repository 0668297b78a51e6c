"""
Generation tasks and the task pipeline.

A GenerationTask binds a TypeFilter to a strategy producing CompilerOutputs
for the types the filter accepts. The TaskPipeline runs an ordered list of
tasks for one type at a time:

1. Tasks are evaluated in declaration order.
2. Every task whose filter matches contributes its outputs, in order. There
   is no priority between tasks: if a file-pattern rule and the
   identifier-shape rule both match, both contribute.
3. Exact duplicates are dropped, keeping the first occurrence. Patches with
   different content at the same insertion point are all kept.

A failing task aborts generation for the current type only.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from . import java_source
from .compiler_output import CompilerOutput, InsertionKind, NewFile, Patch, deduplicate
from .errors import ConfigurationError, GenerationError
from .patterns import (AnyOf, FileHasOption, HasOption, IsIdentifierShaped, TopLevelOnly,
                       TypeFilter)
from .type_model import TypeKind, TypeModel


class GenerationTask:
    """
    A generation rule: a filter plus the strategy emitting outputs.

    Subclasses implement ``generate()``; it is only called for types the
    filter accepts.
    """

    def __init__(self, type_filter: TypeFilter, output_name: str):
        if not isinstance(output_name, str) or not output_name.strip():
            raise ConfigurationError(
                f'{type(self).__name__} requires a non-blank output name')
        self.type_filter = type_filter
        self.output_name = output_name.strip()

    def applicable_to(self, type_model: TypeModel) -> bool:
        return self.type_filter.matches(type_model)

    def generate(self, type_model: TypeModel) -> List[CompilerOutput]:
        raise NotImplementedError

    def __repr__(self):
        return f'{type(self).__name__}({self.type_filter!r}, {self.output_name!r})'


class ImplementInterface(GenerationTask):
    """Makes the generated message class implement an existing interface."""

    def generate(self, type_model: TypeModel) -> List[CompilerOutput]:
        if type_model.kind is not TypeKind.MESSAGE:
            return []
        return [Patch.at(type_model.java_source_file(), InsertionKind.MESSAGE_IMPLEMENTS,
                         type_model.full_name,
                         java_source.implements_clause(self.output_name))]


class MarkerInterfaceFromOption(GenerationTask):
    """
    Generates marker interfaces declared with the ``(is)`` / ``(every_is)`` options.

    The message option takes precedence over the file option. For every
    matching message two outputs are produced: the patch making the message
    implement the interface, and the source file of the interface itself.
    """

    def __init__(self, is_option: str = 'is', every_is_option: str = 'every_is'):
        type_filter = TopLevelOnly(AnyOf((HasOption(is_option),
                                          FileHasOption(every_is_option))))
        super().__init__(type_filter, is_option)
        self.is_option = is_option
        self.every_is_option = every_is_option

    def interface_name(self, type_model: TypeModel) -> Tuple[str, str]:
        """Resolve (java package, simple name) of the marker interface."""
        value = (type_model.option(self.is_option)
                 or type_model.file_option(self.every_is_option) or '').strip()
        if not value:
            raise ValueError(f'No marker interface declared for `{type_model.full_name}`')
        if java_source.PACKAGE_DELIMITER in value:
            return java_source.split_qualified_name(value)
        return type_model.java_package_name(), value

    def generate(self, type_model: TypeModel) -> List[CompilerOutput]:
        if type_model.kind is not TypeKind.MESSAGE:
            return []
        package, name = self.interface_name(type_model)
        qualified = f'{package}.{name}' if package else name
        return [
            Patch.at(type_model.java_source_file(), InsertionKind.MESSAGE_IMPLEMENTS,
                     type_model.full_name, java_source.implements_clause(qualified)),
            NewFile(java_source.source_path(package, name),
                    java_source.marker_interface(package, name)),
        ]


class UuidFactoryMethods(GenerationTask):
    """Adds ``generate()`` and ``of(String)`` to identifier-shaped messages."""

    def __init__(self, factory_name: str = 'uuid_factory_methods'):
        super().__init__(IsIdentifierShaped(), factory_name)

    def generate(self, type_model: TypeModel) -> List[CompilerOutput]:
        return [Patch.at(type_model.java_source_file(), InsertionKind.CLASS_SCOPE,
                         type_model.full_name,
                         java_source.uuid_factory_methods(type_model.name))]


# =============================================================================
# PIPELINE
# =============================================================================

@dataclass
class PipelineResult:
    """Outputs of a whole generation pass, plus the types that failed."""
    outputs: List[CompilerOutput] = field(default_factory=list)
    failures: List[GenerationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class TaskPipeline:
    """An ordered collection of generation tasks."""

    def __init__(self, tasks: Iterable[GenerationTask]):
        self.tasks: Tuple[GenerationTask, ...] = tuple(tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    def generate(self, type_model: TypeModel) -> List[CompilerOutput]:
        """
        Outputs of all applicable tasks for one type.

        Raises:
            GenerationError: a task failed; the original error is chained.
        """
        outputs: List[CompilerOutput] = []
        for task in self.tasks:
            if not task.applicable_to(type_model):
                continue
            try:
                outputs.extend(task.generate(type_model))
            except Exception as e:
                raise GenerationError(type_model.full_name, task.output_name, e) from e
        return deduplicate(outputs)

    def _generate_isolated(self, type_model: TypeModel):
        try:
            return self.generate(type_model), None
        except GenerationError as e:
            return [], e

    def generate_all(self, types: Iterable[TypeModel],
                     max_workers: Optional[int] = None) -> PipelineResult:
        """
        Run the pipeline for every type.

        A failure is recorded for the failing type only; the outputs of the
        other types are kept. Outputs are concatenated in type order and
        deduplicated across types.

        Args:
            types: Types to generate for.
            max_workers: If greater than one, types are processed on a thread pool.
        """
        types = list(types)
        if max_workers and max_workers > 1 and len(types) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(self._generate_isolated, types))
        else:
            results = [self._generate_isolated(t) for t in types]
        result = PipelineResult()
        outputs: List[CompilerOutput] = []
        for produced, error in results:
            if error is not None:
                result.failures.append(error)
            else:
                outputs.extend(produced)
        result.outputs = deduplicate(outputs)
        return result
