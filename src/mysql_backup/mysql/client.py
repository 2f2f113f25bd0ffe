"""
MySQL client / db actions / interactions
Uses the mysql and mysqldump command line clients.
"""
import os
import shlex
import subprocess
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from mysql_backup.mysql.backends.base import Backend
from mysql_backup.utils.converters import Tier, format_period_key
from mysql_backup.utils.datatypes import BackupArtifact


def filter_databases(databases: Iterable[str],
                     include: Optional[List[str]] = None,
                     exclude: Optional[List[str]] = None) -> List[str]:
    """
    Select the databases to back up.
    If include is given, only those databases are used and exclude is ignored.
    Otherwise, all databases except the excluded ones are used.
    Names have to match exactly.
    :param databases: all databases of the server
    :param include: allow list
    :param exclude: deny list
    :return: selected databases
    """
    databases = list(databases)
    if include:
        wanted = set(include)
        return [x for x in databases if x in wanted]
    if exclude:
        ignored = set(exclude)
        return [x for x in databases if x not in ignored]
    return databases


class Client:
    """
    MySQL client. Wraps the mysql and mysqldump binaries.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 user: str = 'root', password: str = '',
                 client: str = 'mysql', dump: str = 'mysqldump',
                 dump_options: Optional[List[str]] = None):
        """
        Init a new client.
        :param host: default: None (socket / client default)
        :param port: default: None
        :param user: default: root
        :param password: default: ''
        :param client: mysql binary. default: mysql
        :param dump: mysqldump binary. default: mysqldump
        :param dump_options: extra arguments for mysqldump
        """
        if not user:
            raise ValueError('user must be provided')
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._client = client
        self._dump = dump
        self._dump_options = list(dump_options or [])

    @property
    def connection_args(self) -> List[str]:
        """
        Connection arguments shared by mysql and mysqldump.
        The password is not part of them. (see env)
        """
        args = [f'--user={self._user}']
        if self._host:
            args.append(f'--host={self._host}')
        if self._port:
            args.append(f'--port={self._port}')
        return args

    @property
    def env(self) -> Dict[str, str]:
        env = os.environ.copy()
        if self._password:
            env['MYSQL_PWD'] = self._password
        return env

    def _query(self, query: str, database: Optional[str] = None) -> List[str]:
        """
        Run a query in batch mode without column names.
        :param query: SQL query
        :param database: database to use
        :return: first column of all rows
        """
        cmd = [self._client, *self.connection_args, '--batch', '--skip-column-names',
               '--silent', '--execute', query]
        if database:
            cmd.append(database)
        logger.debug(f'Running: {self._client} --execute "{query}" {database or ""}')
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                env=self.env, text=True, check=True)
        return [line.split('\t')[0] for line in result.stdout.splitlines() if line]

    def get_databases(self) -> List[str]:
        return self._query('SHOW DATABASES')

    def get_tables(self, database: str) -> List[str]:
        return self._query('SHOW TABLES', database)

    def dump_table(self, database: str, table: str, target: Path):
        """
        Dump one table to target.
        The dump is written to <target>.part first and renamed on success,
        so an aborted dump never looks like a backup.
        :param database: database name
        :param table: table name
        :param target: dump file
        """
        target = Path(target)
        partial = target.with_name(f'{target.name}.part')
        cmd = [self._dump, *self.connection_args, *self._dump_options, database, table]
        try:
            with open(partial, 'wb') as f:
                result = subprocess.run(cmd, stdout=f, stderr=subprocess.PIPE, env=self.env)
            if result.returncode != 0:
                raise RuntimeError(
                    f'mysqldump exited with {result.returncode}: '
                    f'{result.stderr.decode(errors="replace").strip()}')
            os.replace(partial, target)
        finally:
            if partial.exists():
                partial.unlink()

    def restore(self, database: str, path: Path) -> str:
        """
        Generate the shell command restoring a dump file into database.
        The command is not executed. The password is prompted for.
        :param database: target database
        :param path: dump file
        :return: shell command
        """
        return (f'{self._client} {shlex.join(self.connection_args)} --password '
                f'{shlex.quote(database)} < {shlex.quote(str(path))}')

    def backup(self, backend: Backend, today: Optional[date] = None,
               include: Optional[List[str]] = None,
               exclude: Optional[List[str]] = None,
               extension: str = 'sql') -> int:
        """
        Dump every table of the selected databases into
        <backup_dir>/<database>/<today>.<table>.<extension>.
        Failing tables are logged and skipped.
        :param backend: storage backend
        :param today: date of the backup. default: today
        :param include: databases to back up (allow list)
        :param exclude: databases to skip, only used without include
        :param extension: dump file extension
        :return: number of failed dumps
        """
        period_key = format_period_key(today or date.today(), Tier.DAILY)
        logger.info('Fetching database list')
        databases = self.get_databases()
        selected = filter_databases(databases, include, exclude)

        failed = 0
        for database in databases:
            if database not in selected:
                logger.debug(f'Skipping {database}')
                continue
            logger.info(f'Backing up {database}')
            try:
                directory = backend.database_dir(database)
                tables = self.get_tables(database)
            except (OSError, subprocess.CalledProcessError) as e:
                logger.error(f'Could not back up {database}: {e}')
                failed += 1
                continue
            for table in tables:
                artifact = BackupArtifact(Tier.DAILY, period_key, table, database, extension)
                logger.debug(f'Dumping table {table}')
                try:
                    self.dump_table(database, table, directory / artifact.file_name)
                except (OSError, RuntimeError) as e:
                    logger.error(f'Failed to dump {database}.{table}: {e}')
                    failed += 1
        logger.info('Backup phase complete')
        return failed
