"""
Generator configuration.

All settings are plain command line options mapped onto GeneratorConfig.
The same options are accepted by the command line tool and, as the protoc
plugin parameter, by the plugin::

    protoc --modelgen_out=gen \\
           --modelgen_opt='--postfix events.proto=acme.EventMessage,--defaults' ...

Every rule is validated while the options are parsed, so a malformed
configuration is rejected before any type is processed.
"""

import argparse
import shlex
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from .errors import ConfigurationError
from .options import KnownOption, OptionRegistry
from .patterns import FileNameMatches, HasOption, IsIdentifierShaped, Pattern, PatternKind
from .reference_map import ReferenceMap
from .tasks import (GenerationTask, ImplementInterface, MarkerInterfaceFromOption,
                    TaskPipeline, UuidFactoryMethods)

RULE_SEPARATOR = '='

DEFAULT_PATTERN_RULES = (
    ('commands.proto', 'io.spine.base.CommandMessage'),
    ('events.proto', 'io.spine.base.EventMessage'),
    ('rejections.proto', 'io.spine.base.RejectionMessage'),
)
DEFAULT_UUID_INTERFACE = 'io.spine.base.UuidValue'


def _require_target(target: str, what: str) -> str:
    if not isinstance(target, str) or not target.strip():
        raise ConfigurationError(f'Blank target for {what}')
    return target.strip()


@dataclass(frozen=True)
class PatternRule:
    """Types declared in files matching ``pattern`` implement ``target``."""
    pattern: Pattern
    target: str

    def __post_init__(self):
        object.__setattr__(self, 'target',
                           _require_target(self.target, f'pattern `{self.pattern.value}`'))


@dataclass(frozen=True)
class OptionRule:
    """Types carrying the option ``option_name`` implement ``target``."""
    option_name: str
    target: str

    def __post_init__(self):
        if not self.option_name or not self.option_name.strip():
            raise ConfigurationError('Option rule requires an option name')
        object.__setattr__(self, 'target',
                           _require_target(self.target, f'option `{self.option_name}`'))


@dataclass
class GeneratorConfig:
    """
    Settings of one generation pass.

    Attributes:
        pattern_rules: File pattern rules, in declaration order.
        option_rules: Option rules, in declaration order.
        uuid_interface: Interface implemented by identifier-shaped messages.
        uuid_factory: If set, identifier-shaped messages get factory methods.
        markers: Generate marker interfaces declared with ``(is)``/``(every_is)``.
        option_numbers: Custom option field numbers; required for custom option names.
        package_prefix: Prefix of unqualified names in the enrichment map.
        by_option: Field option holding field references.
        enrichment_for_option: Message option listing enriched types.
        enrichment_option: Message option listing enrichments.
        max_workers: Thread pool size; types are processed sequentially if unset.
        verbose: Print diagnostics to stderr.
    """
    pattern_rules: List[PatternRule] = field(default_factory=list)
    option_rules: List[OptionRule] = field(default_factory=list)
    uuid_interface: Optional[str] = None
    uuid_factory: Optional[str] = None
    markers: bool = True
    option_numbers: Dict[str, int] = field(default_factory=dict)
    package_prefix: Optional[str] = None
    by_option: str = 'by'
    enrichment_for_option: str = 'enrichment_for'
    enrichment_option: str = 'enrichment'
    max_workers: Optional[int] = None
    verbose: bool = False

    def __post_init__(self):
        if self.uuid_interface is not None:
            self.uuid_interface = _require_target(self.uuid_interface, 'UUID interface')
        if self.uuid_factory is not None:
            self.uuid_factory = _require_target(self.uuid_factory, 'UUID factory')
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f'Invalid number of workers: {self.max_workers}')
        # Fails fast on unknown option names, unnumbered custom names and bad numbers.
        self.registry()

    def with_defaults(self) -> 'GeneratorConfig':
        """
        A copy with the standard rules added.

        The standard file pattern rules come first, followed by the configured
        ones. The standard UUID interface is used unless one is configured.
        """
        defaults = [PatternRule(Pattern.postfix(p), t) for p, t in DEFAULT_PATTERN_RULES]
        return replace(
            self,
            pattern_rules=defaults + [r for r in self.pattern_rules if r not in defaults],
            uuid_interface=self.uuid_interface or DEFAULT_UUID_INTERFACE,
        )

    def registry(self) -> OptionRegistry:
        return OptionRegistry(self.option_numbers, names={
            KnownOption.BY: self.by_option,
            KnownOption.ENRICHMENT_FOR: self.enrichment_for_option,
            KnownOption.ENRICHMENT: self.enrichment_option,
        })

    def tasks(self) -> List[GenerationTask]:
        """Generation tasks in pipeline order."""
        tasks: List[GenerationTask] = []
        for rule in self.pattern_rules:
            tasks.append(ImplementInterface(FileNameMatches(rule.pattern), rule.target))
        for rule in self.option_rules:
            tasks.append(ImplementInterface(HasOption(rule.option_name), rule.target))
        if self.markers:
            tasks.append(MarkerInterfaceFromOption())
        if self.uuid_interface:
            tasks.append(ImplementInterface(IsIdentifierShaped(), self.uuid_interface))
        if self.uuid_factory:
            tasks.append(UuidFactoryMethods(self.uuid_factory))
        return tasks

    def build_pipeline(self) -> TaskPipeline:
        return TaskPipeline(self.tasks())

    def reference_map(self) -> ReferenceMap:
        return ReferenceMap(by_option=self.by_option,
                            enrichment_for_option=self.enrichment_for_option,
                            enrichment_option=self.enrichment_option,
                            package_prefix=self.package_prefix,
                            verbose=self.verbose)


# =============================================================================
# PARSING
# =============================================================================

def parse_rule(text: str):
    """
    Split a ``KEY=VALUE`` rule at the first separator.

    Raises:
        ConfigurationError: the separator is missing or either side is blank.
    """
    key, sep, value = text.partition(RULE_SEPARATOR)
    key, value = key.strip(), value.strip()
    if not sep or not key or not value:
        raise ConfigurationError(f'Expected KEY{RULE_SEPARATOR}VALUE, got `{text}`')
    return key, value


def _argument_type(convert, name: str):
    """Wrap a converter so argparse reports ConfigurationErrors as usage errors."""
    def wrapped(text):
        try:
            return convert(text)
        except ConfigurationError as e:
            raise argparse.ArgumentTypeError(str(e)) from e
    wrapped.__name__ = name
    return wrapped


def _pattern_rule(kind: PatternKind):
    def convert(text: str) -> PatternRule:
        pattern, target = parse_rule(text)
        return PatternRule(Pattern(kind, pattern), target)
    return _argument_type(convert, f'{kind.value} rule')


def _option_rule(text: str) -> OptionRule:
    return OptionRule(*parse_rule(text))


def _option_number(text: str):
    name, number = parse_rule(text)
    try:
        return name, int(number)
    except ValueError as e:
        raise ConfigurationError(f'Option number of `{name}` is not an integer: `{number}`') from e


def add_generation_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add the generation options to ``parser``."""
    rules = parser.add_argument_group('generation rules')
    rules.add_argument('--postfix', dest='pattern_rules', action='append',
                       type=_pattern_rule(PatternKind.POSTFIX), metavar='PATTERN=TARGET',
                       help='Types from files ending with PATTERN implement TARGET')
    rules.add_argument('--prefix', dest='pattern_rules', action='append',
                       type=_pattern_rule(PatternKind.PREFIX), metavar='PATTERN=TARGET',
                       help='Types from files starting with PATTERN implement TARGET')
    rules.add_argument('--regex', dest='pattern_rules', action='append',
                       type=_pattern_rule(PatternKind.REGEX), metavar='PATTERN=TARGET',
                       help='Types from files fully matching PATTERN implement TARGET')
    rules.add_argument('--option', dest='option_rules', action='append',
                       type=_argument_type(_option_rule, 'option rule'), metavar='NAME=TARGET',
                       help='Types carrying the custom option NAME implement TARGET')
    rules.add_argument('--uuid-interface', metavar='TARGET',
                       help='Interface implemented by messages with a single string `uuid` field')
    rules.add_argument('--uuid-factory', metavar='NAME',
                       help='Add generate()/of() factory methods to UUID messages')
    rules.add_argument('--markers', dest='markers', action='store_true', default=True,
                       help='Generate marker interfaces declared with (is)/(every_is) (default)')
    rules.add_argument('--no-markers', dest='markers', action='store_false',
                       help='Do not generate marker interfaces')
    rules.add_argument('--defaults', action='store_true',
                       help='Add the standard command/event/rejection and UUID rules')

    options = parser.add_argument_group('custom options')
    options.add_argument('--option-number', dest='option_numbers', action='append',
                         type=_argument_type(_option_number, 'option number'),
                         metavar='NAME=NUMBER',
                         help="Field number of an option: overrides a known option's number "
                              "or numbers a custom name given to --by-option and the like")
    options.add_argument('--package-prefix', help='Prefix of unqualified enrichment type names')
    options.add_argument('--by-option', default='by', help='Field reference option (default: by)')
    options.add_argument('--enrichment-for-option', default='enrichment_for',
                         help='Enrichment target option (default: enrichment_for)')
    options.add_argument('--enrichment-option', default='enrichment',
                         help='Enrichment list option (default: enrichment)')

    parser.add_argument('-j', '--jobs', type=int, default=None,
                        help='Process types on a pool of JOBS threads')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')
    return parser


def config_from_namespace(namespace: argparse.Namespace) -> GeneratorConfig:
    config = GeneratorConfig(
        pattern_rules=list(namespace.pattern_rules or []),
        option_rules=list(namespace.option_rules or []),
        uuid_interface=namespace.uuid_interface,
        uuid_factory=namespace.uuid_factory,
        markers=namespace.markers,
        option_numbers=dict(namespace.option_numbers or []),
        package_prefix=namespace.package_prefix,
        by_option=namespace.by_option,
        enrichment_for_option=namespace.enrichment_for_option,
        enrichment_option=namespace.enrichment_option,
        max_workers=namespace.jobs,
        verbose=namespace.verbose,
    )
    return config.with_defaults() if namespace.defaults else config


class _ParameterParser(argparse.ArgumentParser):
    """Raises instead of exiting; the plugin reports errors in its response."""

    def error(self, message):
        raise ConfigurationError(message)


def build_arg_parser(prog: str = 'protoc-gen-modelgen') -> argparse.ArgumentParser:
    parser = _ParameterParser(prog=prog, add_help=False,
                              description='Generation options of the modelgen protoc plugin.')
    return add_generation_arguments(parser)


def config_from_args(argv: Sequence[str]) -> GeneratorConfig:
    """
    Build the configuration from command line style arguments.

    Raises:
        ConfigurationError: an option is unknown or malformed.
    """
    return config_from_namespace(build_arg_parser().parse_args(list(argv)))


def split_parameter(parameter: str) -> List[str]:
    """Split a plugin parameter on commas and whitespace, honouring quotes."""
    lexer = shlex.shlex(parameter or '', posix=True)
    lexer.whitespace += ','
    lexer.whitespace_split = True
    lexer.commenters = ''
    return list(lexer)


def config_from_parameter(parameter: str) -> GeneratorConfig:
    """Build the configuration from the protoc plugin parameter."""
    try:
        tokens = split_parameter(parameter)
    except ValueError as e:
        raise ConfigurationError(f'Malformed plugin parameter: {e}') from e
    return config_from_args(tokens)
