"""
Reading and writing of ``.properties`` files holding the enrichment map.

Keys are written in sorted order. Writing merges into an existing file:
keys already present keep their value, and a conflicting new value is
reported and skipped.
"""

import sys
from pathlib import Path
from typing import Dict, Mapping, Union

ENRICHMENTS_FILE_NAME = 'enrichments.properties'

_ESCAPES = {'\\': '\\\\', '\n': '\\n', '\r': '\\r', '\t': '\\t', '\f': '\\f',
            '=': '\\=', ':': '\\:', '#': '\\#', '!': '\\!'}
_UNESCAPES = {'n': '\n', 'r': '\r', 't': '\t', 'f': '\f'}


def _escape(text: str, is_key: bool) -> str:
    result = []
    for i, ch in enumerate(text):
        if ch == ' ' and (is_key or i == 0):
            result.append('\\ ')
        else:
            result.append(_ESCAPES.get(ch, ch))
    return ''.join(result)


def _unescape(text: str) -> str:
    result = []
    chars = iter(text)
    for ch in chars:
        if ch != '\\':
            result.append(ch)
            continue
        nxt = next(chars, '')
        if nxt == 'u':
            code = ''.join(next(chars, '') for _ in range(4))
            try:
                result.append(chr(int(code, 16)))
            except ValueError as e:
                raise ValueError(f'Malformed \\u escape in `{text}`') from e
        else:
            result.append(_UNESCAPES.get(nxt, nxt))
    return ''.join(result)


def _split_entry(line: str):
    """Split a logical line at the first unescaped ``=``, ``:`` or whitespace."""
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '\\':
            i += 2
            continue
        if ch in '=: \t\f':
            break
        i += 1
    key = line[:i]
    rest = line[i:].lstrip(' \t\f')
    if rest[:1] in ('=', ':'):
        rest = rest[1:].lstrip(' \t\f')
    return _unescape(key), _unescape(rest)


def format_properties(mapping: Mapping[str, str]) -> str:
    """Render ``key=value`` lines sorted by key."""
    return ''.join(f'{_escape(key, True)}={_escape(mapping[key], False)}\n'
                   for key in sorted(mapping))


def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse the contents of a ``.properties`` file.

    Blank lines and comments (``#`` or ``!``) are skipped, and a line ending
    with an odd number of backslashes continues on the next line.
    """
    result: Dict[str, str] = {}
    pending = ''
    for raw in text.splitlines():
        line = raw.lstrip(' \t\f')
        if not pending and (not line or line[0] in '#!'):
            continue
        trailing = len(line) - len(line.rstrip('\\'))
        if trailing % 2:
            pending += line[:-1]
            continue
        line, pending = pending + line, ''
        key, value = _split_entry(line)
        result[key] = value
    if pending:
        key, value = _split_entry(pending)
        result[key] = value
    return result


def write_properties(path: Union[str, Path], mapping: Mapping[str, str],
                     verbose: bool = False) -> Dict[str, str]:
    """
    Merge ``mapping`` into the properties file at ``path``.

    Parent directories are created as needed.

    Returns:
        The properties as written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    props: Dict[str, str] = {}
    if path.exists():
        props = parse_properties(path.read_text(encoding='utf-8'))
        if verbose:
            print(f'[+] Loaded {len(props)} existing entries from {path}', file=sys.stderr)
    for key, value in mapping.items():
        if key not in props:
            props[key] = value
        elif props[key] != value:
            print(f'[!] Entry with the key `{key}` already exists. Value: `{props[key]}`. '
                  f'New value `{value}` was not set.', file=sys.stderr)
    path.write_text(format_properties(props), encoding='utf-8')
    if verbose:
        print(f'[+] Wrote {len(props)} entries to {path}', file=sys.stderr)
    return props
