"""
Tests for file name patterns and type filters.

These tests verify that:
- postfix / prefix / regex patterns match file names as declared
- malformed patterns are rejected when built
- every filter variant, including composition, evaluates as documented
"""

import pytest
from google.protobuf import descriptor_pb2

from conftest import make_type, string_field
from modelgen.errors import ConfigurationError
from modelgen.patterns import (AllOf, AnyOf, FileHasOption, FileNameMatches, HasOption,
                               IsIdentifierShaped, Not, Pattern, PatternKind, TopLevelOnly,
                               TypeFilter, matches)
from modelgen.type_model import FieldModel, TypeKind


class TestPattern:
    """Matching of file names."""

    def test_postfix_matches_end_of_name(self):
        pattern = Pattern.postfix('events.proto')
        assert pattern.matches('acme/order/events.proto')
        assert pattern.matches('events.proto')
        assert not pattern.matches('acme/events.proto.bak')

    def test_prefix_matches_start_of_name(self):
        pattern = Pattern.prefix('acme/')
        assert pattern.matches('acme/events.proto')
        assert not pattern.matches('other/acme/events.proto')

    def test_regex_requires_full_match(self):
        pattern = Pattern.regex(r'.*/(commands|events)\.proto')
        assert pattern.matches('acme/events.proto')
        assert pattern.matches('acme/commands.proto')
        assert not pattern.matches('acme/events.proto.txt')
        assert not Pattern.regex('events').matches('acme/events.proto')

    @pytest.mark.parametrize('factory', [Pattern.postfix, Pattern.prefix, Pattern.regex])
    def test_empty_pattern_is_rejected(self, factory):
        with pytest.raises(ConfigurationError):
            factory('')
        with pytest.raises(ConfigurationError):
            factory('   ')

    def test_invalid_regex_is_rejected(self):
        with pytest.raises(ConfigurationError, match='Invalid file name regex'):
            Pattern.regex('events(')

    def test_equality_ignores_compiled_regex(self):
        assert Pattern.regex('a.*') == Pattern(PatternKind.REGEX, 'a.*')
        assert Pattern.postfix('a') != Pattern.prefix('a')


class TestTypeFilters:
    """Evaluation of each filter variant."""

    def test_file_name_matches(self):
        event = make_type('OrderPlaced', file_name='acme/events.proto')
        command = make_type('PlaceOrder', file_name='acme/commands.proto')
        type_filter = FileNameMatches(Pattern.postfix('events.proto'))
        assert type_filter.matches(event)
        assert not type_filter.matches(command)

    def test_has_option(self):
        marked = make_type(options={'is': 'Marker'})
        plain = make_type()
        assert HasOption('is').matches(marked)
        assert not HasOption('is').matches(plain)

    def test_has_option_unknown_name_never_matches(self):
        marked = make_type(options={'is': 'Marker'})
        assert not HasOption('no_such_option').matches(marked)

    def test_file_has_option(self):
        in_marked_file = make_type(file_options={'every_is': 'Marker'})
        assert FileHasOption('every_is').matches(in_marked_file)
        assert not FileHasOption('every_is').matches(make_type())

    @pytest.mark.parametrize('filter_type', [HasOption, FileHasOption])
    def test_blank_option_name_is_rejected(self, filter_type):
        with pytest.raises(ConfigurationError):
            filter_type(' ')

    def test_top_level_only(self):
        top = make_type('Outer', options={'is': 'Marker'})
        nested = make_type('Inner', options={'is': 'Marker'}, enclosing=('Outer',))
        type_filter = TopLevelOnly(HasOption('is'))
        assert type_filter.matches(top)
        assert not type_filter.matches(nested)

    def test_composition(self):
        event = make_type(file_name='acme/events.proto', options={'is': 'Marker'})
        is_event = FileNameMatches(Pattern.postfix('events.proto'))
        is_marked = HasOption('is')
        assert AllOf((is_event, is_marked)).matches(event)
        assert not AllOf((is_event, Not(is_marked))).matches(event)
        assert AnyOf((Not(is_event), is_marked)).matches(event)
        assert not AnyOf((Not(is_event), Not(is_marked))).matches(event)

    def test_empty_composition_is_rejected(self):
        with pytest.raises(ConfigurationError):
            AnyOf(())
        with pytest.raises(ConfigurationError):
            AllOf([])

    def test_composition_stores_tuple(self):
        type_filter = AnyOf([HasOption('is')])
        assert type_filter.filters == (HasOption('is'),)
        assert hash(type_filter) == hash(AnyOf((HasOption('is'),)))

    def test_evaluation_is_repeatable(self):
        model = make_type(file_name='acme/events.proto')
        type_filter = FileNameMatches(Pattern.postfix('events.proto'))
        assert [matches(type_filter, model) for _ in range(3)] == [True, True, True]

    def test_unknown_filter_type_raises(self):
        with pytest.raises(TypeError):
            matches(TypeFilter(), make_type())


class TestIdentifierShape:
    """Detection of messages holding only a ``uuid`` string."""

    def test_single_uuid_string_field(self):
        assert IsIdentifierShaped().matches(make_type('UserId', fields=[string_field('uuid')]))

    def test_additional_field_disqualifies(self):
        order_id = make_type('OrderId', fields=[string_field('uuid'), string_field('shard')])
        assert not IsIdentifierShaped().matches(order_id)

    def test_wrong_field_name_disqualifies(self):
        assert not IsIdentifierShaped().matches(make_type(fields=[string_field('value')]))

    def test_non_string_field_disqualifies(self):
        field = FieldModel('uuid', type=descriptor_pb2.FieldDescriptorProto.TYPE_BYTES)
        assert not IsIdentifierShaped().matches(make_type(fields=[field]))

    def test_repeated_field_disqualifies(self):
        assert not IsIdentifierShaped().matches(
            make_type(fields=[string_field('uuid', repeated=True)]))

    def test_no_fields(self):
        assert not IsIdentifierShaped().matches(make_type())
        assert not IsIdentifierShaped().matches(make_type(kind=TypeKind.ENUM))
