"""
Enrichment map building.

Enrichment messages declare which messages they enrich, either directly with
message options or indirectly through ``(by)`` references on their fields::

    message UserNameEnrichment {
        option (enrichment_for) = "UserCreated,UserRenamed";
        string name = 1;
    }

    message OrderEnrichment {
        string customer_name = 1 [(by) = "acme.OrderPlaced.customer_id"];
    }

ReferenceMap scans messages and folds the findings into a multimap from an
enrichment type name to the names of the types it enriches. The multimap is
then merged into a flat ``{name: "A,B"}`` map written as a properties file.

Each message is scanned by the first rule that yields anything:

1. ``(enrichment_for)`` / ``(enrichment)`` options of the message itself.
2. ``(by)`` options of the message fields.
3. ``(by)`` options of the fields of the first-level nested messages; only
   the first nested message found is used.
"""

import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set

from .field_reference import WILDCARD, parse_references, referenced_type_names
from .type_model import TypeModel

VALUE_SEPARATOR = ','
EMPTY_TYPE_NAME = ''
TYPE_LIST_SEPARATOR = ','
TYPE_SEPARATOR = '.'


def fold(acc: Mapping[str, FrozenSet[str]],
         findings: Mapping[str, Iterable[str]]) -> Dict[str, FrozenSet[str]]:
    """Return a new multimap holding the entries of ``acc`` and ``findings``."""
    result = dict(acc)
    for key, values in findings.items():
        result[key] = result.get(key, frozenset()) | frozenset(values)
    return result


def merge(multimap: Mapping[str, Iterable[str]]) -> Dict[str, str]:
    """
    Flatten a multimap into a single-valued map.

    For keys holding more than one value the empty placeholder is dropped.
    Several remaining values are sorted and joined with ``VALUE_SEPARATOR``.

    Examples:
        >>> merge({'X': ['A', 'B', 'A']})
        {'X': 'A,B'}
        >>> merge({'X': ['', 'A']})
        {'X': 'A'}
    """
    result: Dict[str, str] = {}
    for key in sorted(multimap):
        values = set(multimap[key])
        if len(values) > 1:
            values.discard(EMPTY_TYPE_NAME)
        result[key] = VALUE_SEPARATOR.join(sorted(values))
    return result


class ReferenceMap:
    """
    Builds the enrichment map of a set of messages.

    Scanning a message is pure, so messages may be scanned in parallel; the
    findings are folded and merged sequentially afterwards.
    """

    def __init__(self, by_option: str = 'by', enrichment_for_option: str = 'enrichment_for',
                 enrichment_option: str = 'enrichment', package_prefix: Optional[str] = None,
                 verbose: bool = False):
        """
        Args:
            by_option: Name of the field option holding field references.
            enrichment_for_option: Message option listing the types a message enriches.
            enrichment_option: Message option listing the enrichments of a message.
            package_prefix: Prefix for unqualified type names. If omitted, the
                package of the scanned message is used.
            verbose: Print scanning diagnostics to stderr.
        """
        self.by_option = by_option
        self.enrichment_for_option = enrichment_for_option
        self.enrichment_option = enrichment_option
        if package_prefix and not package_prefix.endswith(TYPE_SEPARATOR):
            package_prefix += TYPE_SEPARATOR
        self.package_prefix = package_prefix
        self.verbose = verbose

    def _log(self, text: str) -> None:
        if self.verbose:
            print(f'[+] {text}', file=sys.stderr)

    def _prefix(self, message: TypeModel) -> str:
        if self.package_prefix is not None:
            return self.package_prefix
        return message.package + TYPE_SEPARATOR if message.package else ''

    def _message_name(self, message: TypeModel) -> str:
        if self.package_prefix is not None:
            return self.package_prefix + message.name
        return message.full_name

    def _type_names(self, value: str, prefix: str) -> List[str]:
        names = []
        for name in value.split(TYPE_LIST_SEPARATOR):
            name = name.strip()
            if not name:
                continue
            names.append(name if TYPE_SEPARATOR in name else prefix + name)
        return names

    # -------------------------------------------------------------------------
    # Scanning rules
    # -------------------------------------------------------------------------

    def scan_message_options(self, message: TypeModel) -> Dict[str, Set[str]]:
        """Rule 1: the message as an enrichment, and as an enrichment target."""
        result: Dict[str, Set[str]] = {}
        name = self._message_name(message)
        prefix = self._prefix(message)
        targets = message.option(self.enrichment_for_option)
        if targets:
            found = self._type_names(targets, prefix)
            if found:
                self._log(f'{name} enriches {", ".join(found)}')
                result.setdefault(name, set()).update(found)
        enrichments = message.option(self.enrichment_option)
        if enrichments:
            for enrichment in self._type_names(enrichments, prefix):
                self._log(f'{name} is enriched by {enrichment}')
                result.setdefault(enrichment, set()).add(name)
        return result

    def scan_fields(self, message: TypeModel) -> Dict[str, Set[str]]:
        """Rule 2: ``(by)`` references on the fields of the message."""
        result: Dict[str, Set[str]] = {}
        name = self._message_name(message)
        for field in message.fields:
            value = field.option(self.by_option)
            if value is None:
                continue
            references = parse_references(value, field_name=field.name,
                                          message_name=message.name)
            targets = [t for t in referenced_type_names(references) if t != WILDCARD]
            self._log(f"'{self.by_option}' option on {name}.{field.name} targets "
                      f"{', '.join(targets) or '(unknown)'}")
            result.setdefault(name, set()).update(targets or [EMPTY_TYPE_NAME])
        return result

    def scan_nested(self, message: TypeModel) -> Dict[str, Set[str]]:
        """Rule 3: the first nested message with a ``(by)`` reference enriches its outer message."""
        outer = self._message_name(message)
        for nested in message.nested_types:
            for field in nested.fields:
                if field.option(self.by_option) is not None:
                    enrichment = outer + TYPE_SEPARATOR + nested.name
                    self._log(f'{enrichment} enriches outer message {outer}')
                    return {enrichment: {outer}}
        return {}

    def scan(self, message: TypeModel) -> Dict[str, FrozenSet[str]]:
        """Findings for one message, from the first rule that yields any."""
        for rule in (self.scan_message_options, self.scan_fields, self.scan_nested):
            found = rule(message)
            if found:
                return {key: frozenset(values) for key, values in found.items()}
        self._log(f'No enrichment options found in {message.full_name}')
        return {}

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def collect(self, messages: Iterable[TypeModel],
                max_workers: Optional[int] = None) -> Dict[str, FrozenSet[str]]:
        """Scan all messages and fold their findings into one multimap."""
        messages = list(messages)
        if max_workers and max_workers > 1 and len(messages) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                per_message = list(pool.map(self.scan, messages))
        else:
            per_message = [self.scan(m) for m in messages]
        acc: Dict[str, FrozenSet[str]] = {}
        for findings in per_message:
            acc = fold(acc, findings)
        return acc

    def build_from(self, messages: Iterable[TypeModel],
                   max_workers: Optional[int] = None) -> Dict[str, str]:
        """
        Build the flattened enrichment map of the given messages.

        Raises:
            InvalidOptionUsage: a ``(by)`` value mixes a wildcard with other references.
            InvalidOptionValue: a ``(by)`` reference has a blank type name.
        """
        multimap = self.collect(messages, max_workers)
        self._log(f'Merging {len(multimap)} enrichment entries')
        return merge(multimap)
