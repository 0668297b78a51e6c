"""
Tests for the modelgen command line tool.
"""

import pytest

from modelgen import cli
from modelgen.properties import parse_properties


@pytest.mark.integration
class TestEnrichmentsCommand:
    """``modelgen enrichments``"""

    def test_writes_properties(self, descriptor_set_path, tmp_path):
        output = tmp_path / 'out' / 'enrichments.properties'
        status = cli.main(['enrichments', str(descriptor_set_path), '-o', str(output)])
        assert status == cli.EXIT_OK
        assert parse_properties(output.read_text(encoding='utf-8')) == {
            'acme.OrderEnrichment': 'acme.OrderPlaced',
            'acme.ProjectCreated.Details': 'acme.ProjectCreated',
            'acme.UserNameEnrichment': 'acme.UserCreated,acme.UserRenamed',
        }

    def test_file_filter(self, descriptor_set_path, tmp_path):
        output = tmp_path / 'enrichments.properties'
        status = cli.main(['enrichments', str(descriptor_set_path), '-o', str(output),
                           '--file', 'acme/events.proto'])
        assert status == cli.EXIT_OK
        assert output.read_text(encoding='utf-8') == ''

    def test_missing_descriptor_set(self, tmp_path, capsys):
        status = cli.main(['enrichments', str(tmp_path / 'missing.desc'),
                           '-o', str(tmp_path / 'e.properties')])
        assert status == cli.EXIT_ERROR
        assert '[X]' in capsys.readouterr().err

    def test_corrupt_descriptor_set(self, tmp_path, capsys):
        path = tmp_path / 'corrupt.desc'
        path.write_bytes(b'\x0a\xff\xff\xff')
        status = cli.main(['enrichments', str(path), '-o', str(tmp_path / 'e.properties')])
        assert status == cli.EXIT_ERROR
        assert 'not a valid descriptor set' in capsys.readouterr().err


@pytest.mark.integration
class TestGenerateCommand:
    """``modelgen generate``"""

    def test_dry_run(self, descriptor_set_path, capsys):
        status = cli.main(['generate', str(descriptor_set_path), '--file', 'acme/events.proto',
                           '--file', 'acme/identifiers.proto', '--defaults'])
        assert status == cli.EXIT_OK
        assert capsys.readouterr().out.splitlines() == [
            'patch com/acme/events/OrderPlaced.java @ message_implements:acme.OrderPlaced',
            'patch com/acme/events/OrderCancelled.java @ message_implements:acme.OrderCancelled',
            'patch com/acme/Identifiers.java @ message_implements:acme.UserId',
        ]

    def test_show_content(self, descriptor_set_path, capsys):
        status = cli.main(['generate', str(descriptor_set_path), '--file', 'acme/identifiers.proto',
                           '--uuid-factory', 'uuid', '--show-content'])
        assert status == cli.EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith('patch com/acme/Identifiers.java @ class_scope:acme.UserId\n')
        assert 'public static UserId generate()' in out

    def test_invalid_rule_is_usage_error(self, descriptor_set_path):
        with pytest.raises(SystemExit) as info:
            cli.main(['generate', str(descriptor_set_path), '--postfix', 'events.proto'])
        assert info.value.code == cli.EXIT_USAGE

    def test_invalid_setting_is_usage_error(self, descriptor_set_path, capsys):
        status = cli.main(['generate', str(descriptor_set_path), '--jobs', '0'])
        assert status == cli.EXIT_USAGE
        assert '[X]' in capsys.readouterr().err

    def test_missing_command(self):
        with pytest.raises(SystemExit) as info:
            cli.main([])
        assert info.value.code == cli.EXIT_USAGE
