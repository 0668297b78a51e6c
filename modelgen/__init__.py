'''Augmentation of protoc generated Java model classes.'''

from .compiler_output import CompilerOutput, InsertionKind, NewFile, Patch
from .config import GeneratorConfig, config_from_args, config_from_parameter
from .errors import (ConfigurationError, GenerationError, InvalidOptionUsage,
                     InvalidOptionValue, ModelgenError)
from .field_reference import FieldReference, parse_references
from .options import KnownOption, OptionRegistry
from .patterns import (AllOf, AnyOf, FileHasOption, FileNameMatches, HasOption,
                       IsIdentifierShaped, Not, Pattern, TopLevelOnly, TypeFilter)
from .reference_map import ReferenceMap
from .tasks import (GenerationTask, ImplementInterface, MarkerInterfaceFromOption,
                    PipelineResult, TaskPipeline, UuidFactoryMethods)
from .type_model import FieldModel, TypeKind, TypeModel, TypeSet

__version__ = '0.1.0'
