#!/usr/bin/env python3
"""
modelgen command line tool.

Works on binary descriptor sets produced by ``protoc --descriptor_set_out``
(use ``--include_imports`` so that options of imported files are visible).

Usage:
    modelgen enrichments acme.desc -o build/enrichments.properties
    modelgen generate acme.desc --file acme/events.proto --defaults
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from google.protobuf.message import DecodeError

from .compiler_output import CompilerOutput, NewFile, Patch
from .config import GeneratorConfig, add_generation_arguments, config_from_namespace
from .errors import ConfigurationError, ModelgenError
from .properties import ENRICHMENTS_FILE_NAME, write_properties
from .type_model import TypeSet

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='modelgen',
        description='Generate model code augmentations from protobuf descriptors.')
    commands = parser.add_subparsers(dest='command', metavar='COMMAND')
    commands.required = True

    common = add_generation_arguments(argparse.ArgumentParser(add_help=False))

    enrichments = commands.add_parser(
        'enrichments', parents=[common],
        help='Write the enrichment map of a descriptor set as a properties file')
    enrichments.add_argument('descriptor_set', help='Binary FileDescriptorSet')
    enrichments.add_argument('-o', '--output', default=ENRICHMENTS_FILE_NAME,
                             help=f'Output properties file (default: {ENRICHMENTS_FILE_NAME})')
    enrichments.add_argument('--file', dest='files', action='append', metavar='NAME',
                             help='Only scan types declared in this .proto file (repeatable)')

    generate = commands.add_parser(
        'generate', parents=[common],
        help='Print the outputs the protoc plugin would produce')
    generate.add_argument('descriptor_set', help='Binary FileDescriptorSet')
    generate.add_argument('--file', dest='files', action='append', metavar='NAME',
                          help='Only generate for types declared in this .proto file (repeatable)')
    generate.add_argument('--show-content', action='store_true',
                          help='Print the content of every output')
    return parser


def describe(output: CompilerOutput) -> str:
    """One-line summary of an output."""
    if isinstance(output, Patch):
        return f'patch {output.target_file} @ {output.insertion_point_key}'
    if isinstance(output, NewFile):
        return f'file {output.path}'
    raise TypeError(f'Unsupported output: {output!r}')


def _load_types(path: str, config: GeneratorConfig, files: Optional[List[str]]) -> TypeSet:
    data = Path(path).read_bytes()
    types = TypeSet.from_descriptor_set(data, config.registry(), only=files)
    if config.verbose:
        print(f'[+] Loaded {len(types)} types from {path}', file=sys.stderr)
    return types


def run_enrichments(args: argparse.Namespace, config: GeneratorConfig) -> int:
    types = _load_types(args.descriptor_set, config, args.files)
    mapping = config.reference_map().build_from(types.top_level_messages(), config.max_workers)
    write_properties(args.output, mapping, verbose=config.verbose)
    print(f'[+] {len(mapping)} enrichment entries written to {args.output}', file=sys.stderr)
    return EXIT_OK


def run_generate(args: argparse.Namespace, config: GeneratorConfig) -> int:
    types = _load_types(args.descriptor_set, config, args.files)
    result = config.build_pipeline().generate_all(types, config.max_workers)
    for output in result.outputs:
        print(describe(output))
        if args.show_content:
            for line in output.content.splitlines():
                print(f'    {line}')
    for failure in result.failures:
        print(f'[X] {failure}', file=sys.stderr)
    return EXIT_OK if result.ok else EXIT_ERROR


COMMANDS = {
    'enrichments': run_enrichments,
    'generate': run_generate,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = config_from_namespace(args)
    except ConfigurationError as e:
        print(f'[X] {e}', file=sys.stderr)
        return EXIT_USAGE

    try:
        return COMMANDS[args.command](args, config)
    except OSError as e:
        print(f'[X] {e}', file=sys.stderr)
    except DecodeError as e:
        print(f'[X] {args.descriptor_set} is not a valid descriptor set: {e}', file=sys.stderr)
    except (ModelgenError, ValueError) as e:
        print(f'[X] {e}', file=sys.stderr)
    return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
