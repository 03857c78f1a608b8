"""Tests for the CLI parser, command handlers and entry point."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

import cli.commands as commands
from cli.commands import (
    handle_get,
    handle_health,
    handle_recover,
    handle_shard,
    handle_size,
    handle_unshard,
    run_command,
)
from cli.main import main
from cli.models import (
    GetCommand,
    HealthCommand,
    RecoverCommand,
    ShardCommand,
    SizeCommand,
    UnshardCommand,
)
from cli.parser import ParseError, parse_command, parse_tokens
from cli.repl import connection_banner, execute_line
from cli.utils import format_file_size, format_health
from gateway.exceptions import ObjectNotFoundError, TransportError
from gateway.schemas import SdsFile, StorageStatus
from gateway.sds import SdsGateway
from gateway.transport import SdsTransport


@pytest.mark.parametrize('line, expected', [
    ('shard a.txt', ShardCommand(path='a.txt')),
    ('shard "my file.txt" docs/my.txt', ShardCommand(path='my file.txt', object_name='docs/my.txt')),
    ('get a.txt out.txt', GetCommand(pointer_path='a.txt', output_path='out.txt')),
    ('unshard a.txt', UnshardCommand(path='a.txt')),
    ('size 000000000000000000000001', SizeCommand(object_id='000000000000000000000001')),
    ('size --strict abc', SizeCommand(object_id='abc', strict=True)),
    ('HEALTH', HealthCommand()),
    ('recover /srv/pointers', RecoverCommand(root='/srv/pointers')),
])
def test_parse_command(line, expected):
    assert parse_command(line) == expected


@pytest.mark.parametrize('line', [
    '',
    '   ',
    'shard',
    'shard a b c',
    'get a.txt',
    'unshard',
    'size',
    'size a b',
    'health now',
    'recover',
    'delete a.txt',
    'shard "unterminated',
])
def test_parse_command_errors(line):
    with pytest.raises(ParseError):
        parse_command(line)


def test_parse_tokens_keeps_spaces():
    assert parse_tokens(['shard', 'with space.txt']) == ShardCommand(path='with space.txt')


def test_handle_shard_with_mock():
    """Test shard handler with a mocked gateway."""
    mock_gateway = Mock(spec=SdsGateway)
    mock_gateway.shard.return_value = '000000000000000000000042'

    result = handle_shard(ShardCommand(path='a.txt', object_name='docs/a.txt'), gateway=mock_gateway)

    assert result == 'Sharded a.txt (ID: 000000000000000000000042)'
    mock_gateway.shard.assert_called_once_with('a.txt', 'docs/a.txt')


def test_handle_size_with_mock():
    mock_gateway = Mock(spec=SdsGateway)
    mock_gateway.get_file_size.return_value = 2048

    result = handle_size(SizeCommand(object_id='abc', strict=True), gateway=mock_gateway)

    assert result == 'abc: 2.00 KiB (2048 bytes)'
    mock_gateway.get_file_size.assert_called_once_with('abc', strict=True)


def test_shard_get_unshard_flow(gateway, sample_file, tmp_path):
    shard_message = handle_shard(ShardCommand(path=str(sample_file)), gateway=gateway)
    assert '000000000000000000000001' in shard_message

    output = tmp_path / 'out' / 'copy.txt'
    get_message = handle_get(GetCommand(pointer_path=str(sample_file), output_path=str(output)), gateway=gateway)
    assert output.read_bytes() == b'0123456789'
    assert get_message.startswith('Downloaded 000000000000000000000001')

    unshard_message = handle_unshard(UnshardCommand(path=str(sample_file)), gateway=gateway)
    assert unshard_message.endswith('(10 B)')
    assert sample_file.read_bytes() == b'0123456789'


def test_handle_get_into_directory(gateway, sample_file, tmp_path):
    gateway.shard(sample_file)
    target_dir = tmp_path / 'downloads'
    target_dir.mkdir()

    handle_get(GetCommand(pointer_path=str(sample_file), output_path=str(target_dir)), gateway=gateway)

    assert (target_dir / 'a.txt').read_bytes() == b'0123456789'


def test_handle_health(gateway):
    result = handle_health(HealthCommand(), gateway=gateway)

    assert result.splitlines()[0] == '1/2 storage node(s) healthy:'
    assert 'node-1.sds.test [eu-west]' in result
    assert 'degraded' in result


def test_handle_recover(gateway, fake_sds, tmp_path):
    fake_sds.add_object('docs/a.txt', b'a')
    fake_sds.add_object('docs/b.txt', b'b')

    result = handle_recover(RecoverCommand(root=str(tmp_path)), gateway=gateway)

    assert result.startswith('Recovery completed: ')
    assert '2 pointer file(s) written, 0 skipped' in result
    recovered = [p for p in tmp_path.iterdir() if p.name.endswith('_recovery')]
    assert len(recovered) == 1
    assert (recovered[0] / 'docs' / 'b.txt').read_bytes() == b'000000000000000000000002'


def test_run_command_success(gateway):
    ok, message = run_command(HealthCommand(), gateway=gateway)

    assert ok
    assert 'storage node(s) healthy' in message


def test_run_command_renders_gateway_errors():
    mock_gateway = Mock(spec=SdsGateway)
    mock_gateway.get_file_size.side_effect = ObjectNotFoundError('Cannot find file abc in SDS')

    ok, message = run_command(SizeCommand(object_id='abc', strict=True), gateway=mock_gateway)

    assert not ok
    assert message == 'Error: Cannot find file abc in SDS'


def test_run_command_failed_recovery(tmp_path):
    mock_gateway = Mock(spec=SdsGateway)
    mock_gateway.list_files.side_effect = TransportError('Connection refused')

    ok, message = run_command(RecoverCommand(root=str(tmp_path)), gateway=mock_gateway)

    assert not ok
    assert message == 'Failed Recovery: Connection refused'
    assert list(tmp_path.iterdir()) == []


def test_run_command_malformed_pointer(gateway, tmp_path):
    path = tmp_path / 'plain.txt'
    path.write_bytes(b'plain text')

    ok, message = run_command(UnshardCommand(path=str(path)), gateway=gateway)

    assert not ok
    assert message.startswith('Error: ')


@pytest.mark.parametrize('size, expected', [
    (0, '0 B'),
    (1023, '1023 B'),
    (1024, '1.00 KiB'),
    (1536 * 1024, '1.50 MiB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_health_empty():
    assert format_health([]) == 'SDS reported no storage nodes.'


def test_format_health_counts_case_insensitively():
    statuses = [StorageStatus(host='a', status='UP'), StorageStatus(host='b', status='down')]

    assert format_health(statuses).startswith('1/2 storage node(s) healthy:')


def test_main_help(capsys):
    assert main(['--help']) == 0

    out = capsys.readouterr().out
    assert 'usage: sds-gateway' in out
    assert 'recover <root>' in out


def test_main_parse_error(capsys):
    assert main(['shard']) == 2

    assert 'shard requires' in capsys.readouterr().err


def test_main_config_option_needs_value(capsys):
    assert main(['health', '--config']) == 2

    assert '--config requires a value' in capsys.readouterr().err


def test_main_missing_config(tmp_path, capsys):
    assert main(['--config', str(tmp_path / 'missing.json'), 'health']) == 1

    err = capsys.readouterr().err
    assert err.startswith('Error: ')
    assert 'not found' in err
    assert commands._gateway is None


def test_main_runs_command(config_file, fake_sds, monkeypatch, capsys):
    def from_config(cls, config, session=None):
        return cls(SdsTransport(config, session=TestClient(fake_sds.app)))

    monkeypatch.setattr(SdsGateway, 'from_config', classmethod(from_config))

    assert main(['--config', str(config_file), 'health']) == 0

    assert '1/2 storage node(s) healthy:' in capsys.readouterr().out
    assert fake_sds.paths() == ['/api/health']
    assert commands._gateway is None


def test_repl_execute_line_builtins():
    assert execute_line('   ') == (True, None)
    assert execute_line('exit') == (False, 'Goodbye!')
    assert execute_line('help')[1].startswith('Available commands:')


def test_repl_execute_line_parse_error():
    keep_running, output = execute_line('get only-one-arg')

    assert keep_running
    assert output.startswith('Error: get requires')


def test_repl_execute_line_runs_command(gateway):
    keep_running, output = execute_line('health', gateway)

    assert keep_running
    assert '1/2 storage node(s) healthy:' in output


def test_connection_banner(gateway):
    assert connection_banner(gateway) == 'Connected to http://sds.test/api'


def test_connection_banner_without_config(tmp_path, monkeypatch):
    monkeypatch.setattr(commands, '_config_path', str(tmp_path / 'missing.json'))

    assert 'No SDS configured' in connection_banner()


def test_run_command_recovery_rejects_nul_name(tmp_path):
    mock_gateway = Mock(spec=SdsGateway)
    mock_gateway.list_files.return_value = [
        SdsFile(id='0' * 24, fileName='bad\x00name', creationDate='2024-01-01'),
    ]

    ok, message = run_command(RecoverCommand(root=str(tmp_path)), gateway=mock_gateway)

    assert not ok
    assert message.startswith('Failed Recovery: ')
    assert list(tmp_path.iterdir()) == []
