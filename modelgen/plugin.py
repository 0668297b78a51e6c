#!/usr/bin/env python3
"""
protoc-gen-modelgen: protoc plugin augmenting the Java code generated by protoc.

The plugin reads a CodeGeneratorRequest from stdin and writes a
CodeGeneratorResponse to stdout. It runs after protoc's own Java generator
and answers with insertion point patches and new files:

    protoc --java_out=gen --modelgen_out=gen \\
           --modelgen_opt='--defaults,--uuid-factory=uuid' acme/events.proto

Errors are reported through ``CodeGeneratorResponse.error``; the process
still exits with status 0 so that protoc shows the message.
"""

import sys
from typing import Optional

from google.protobuf.compiler import plugin_pb2 as plugin

from .config import GeneratorConfig, config_from_parameter
from .errors import ModelgenError
from .type_model import TypeSet

MIN_COMPILER_MAJOR_VERSION = 3


def _check_request(request: plugin.CodeGeneratorRequest) -> Optional[str]:
    if request.HasField('compiler_version'):
        version = request.compiler_version
        if version.major < MIN_COMPILER_MAJOR_VERSION:
            return (f'protoc {version.major}.{version.minor}.{version.patch} is not supported; '
                    f'version {MIN_COMPILER_MAJOR_VERSION} or newer is required')
    if not request.file_to_generate:
        return 'No files to generate'
    return None


def generate(request: plugin.CodeGeneratorRequest,
             config: Optional[GeneratorConfig] = None) -> plugin.CodeGeneratorResponse:
    """
    Answer a code generation request.

    Args:
        request: The request sent by protoc.
        config: Generation settings. If omitted, they are parsed from the
            request parameter.

    Returns:
        A response holding either all generated files or an error.
    """
    response = plugin.CodeGeneratorResponse()
    response.supported_features = plugin.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    problem = _check_request(request)
    if problem:
        response.error = problem
        return response

    try:
        if config is None:
            config = config_from_parameter(request.parameter)
        types = TypeSet.from_request(request, config.registry())
    except (ModelgenError, ValueError) as e:
        response.error = f'modelgen: {e}'
        return response

    if config.verbose:
        print(f'[+] {len(types)} types in {len(request.file_to_generate)} files',
              file=sys.stderr)
    result = config.build_pipeline().generate_all(types, config.max_workers)
    if not result.ok:
        for failure in result.failures:
            print(f'[X] {failure}', file=sys.stderr)
        response.error = '\n'.join(str(f) for f in result.failures)
        return response

    for output in result.outputs:
        response.file.append(output.as_file())
    if config.verbose:
        print(f'[+] {len(result.outputs)} outputs generated', file=sys.stderr)
    return response


def main() -> int:
    if sys.stdin.isatty():
        print('[X] protoc-gen-modelgen is a protoc plugin, it is not intended for direct use.',
              file=sys.stderr)
        print('    Usage: protoc --plugin=protoc-gen-modelgen --modelgen_out=DIR file.proto',
              file=sys.stderr)
        return 1

    request = plugin.CodeGeneratorRequest()
    request.ParseFromString(sys.stdin.buffer.read())
    response = generate(request)
    sys.stdout.buffer.write(response.SerializeToString())
    return 0


if __name__ == '__main__':
    sys.exit(main())
