"""Tests for the MySQL client wrapper and the database selection."""
import subprocess
from datetime import date

import pytest

from mysql_backup.mysql.client import Client, filter_databases

DATABASES = ['information_schema', 'shop', 'test', 'test2']
TABLES = {'shop': ['orders', 'users'], 'test': ['t1'], 'test2': ['t2']}


class TestFilterDatabases:

    def test_no_filter(self):
        assert filter_databases(DATABASES) == DATABASES

    def test_include_wins_over_exclude(self):
        assert filter_databases(DATABASES, include=['shop'], exclude=['shop', 'test']) == ['shop']

    def test_exclude(self):
        assert filter_databases(DATABASES, exclude=['information_schema']) == [
            'shop', 'test', 'test2']

    def test_names_match_exactly(self):
        assert filter_databases(DATABASES, include=['test']) == ['test']
        assert filter_databases(DATABASES, exclude=['test']) == [
            'information_schema', 'shop', 'test2']


class FakeMySQL:
    """
    Replacement for subprocess.run answering like mysql / mysqldump.
    """

    def __init__(self, broken_tables=()):
        self.calls = []
        self.broken_tables = broken_tables

    def __call__(self, cmd, stdout=None, stderr=None, env=None, text=False, check=False):
        self.calls.append((cmd, env))
        if cmd[0] == 'mysql':
            if cmd[-1] == 'SHOW DATABASES':
                rows = DATABASES
            else:
                rows = TABLES[cmd[-1]]
            return subprocess.CompletedProcess(cmd, 0, '\n'.join(rows) + '\n', '')
        database, table = cmd[-2:]
        if table in self.broken_tables:
            stdout.write(b'-- partial')
            return subprocess.CompletedProcess(cmd, 2, None, b'Lost connection')
        stdout.write(f'-- dump of {database}.{table}\n'.encode())
        return subprocess.CompletedProcess(cmd, 0, None, b'')


@pytest.fixture
def client():
    return Client(host='db.local', port=3307, user='backup', password='secret',
                  dump_options=['--single-transaction'])


class TestClient:

    def test_requires_user(self):
        with pytest.raises(ValueError):
            Client(user='')

    def test_password_is_passed_in_the_environment(self, client, monkeypatch):
        fake = FakeMySQL()
        monkeypatch.setattr(subprocess, 'run', fake)
        assert client.get_databases() == DATABASES
        cmd, env = fake.calls[0]
        assert env['MYSQL_PWD'] == 'secret'
        assert not any('secret' in x for x in cmd)
        assert '--host=db.local' in cmd
        assert '--port=3307' in cmd

    def test_get_tables(self, client, monkeypatch):
        monkeypatch.setattr(subprocess, 'run', FakeMySQL())
        assert client.get_tables('shop') == ['orders', 'users']

    def test_backup(self, client, backend, existing, monkeypatch):
        fake = FakeMySQL()
        monkeypatch.setattr(subprocess, 'run', fake)
        failed = client.backup(backend, today=date(2024, 1, 15),
                               exclude=['information_schema', 'test2'])
        assert failed == 0
        assert existing() == [
            'shop/2024-01-15.orders.sql',
            'shop/2024-01-15.users.sql',
            'test/2024-01-15.t1.sql',
        ]
        assert (backend.backup_dir / 'shop/2024-01-15.orders.sql').read_text() == \
            '-- dump of shop.orders\n'
        dump = [cmd for cmd, _ in fake.calls if cmd[0] == 'mysqldump'][0]
        assert '--single-transaction' in dump

    def test_failed_dump_leaves_no_file(self, client, backend, existing, monkeypatch):
        monkeypatch.setattr(subprocess, 'run', FakeMySQL(broken_tables=['orders']))
        failed = client.backup(backend, today=date(2024, 1, 15), include=['shop'])
        assert failed == 1
        assert existing() == ['shop/2024-01-15.users.sql']

    def test_restore_command(self, client, tmp_path):
        command = client.restore('shop', tmp_path / '2024-01.orders.sql')
        assert command.startswith('mysql --user=backup --host=db.local --port=3307 --password shop')
        assert command.endswith(f'< {tmp_path / "2024-01.orders.sql"}')
        assert 'secret' not in command

    def test_restore_command_is_quoted(self, client, tmp_path):
        path = tmp_path / 'my shop' / '2024-01.order $items.sql'
        command = client.restore('my shop', path)
        assert " --password 'my shop' < " in command
        assert command.endswith(f"'{path}'")
