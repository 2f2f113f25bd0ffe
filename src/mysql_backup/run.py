"""
Creates per table backups of MySQL databases and rotates them.
"""
import subprocess
import sys
from pathlib import Path

import click
from dynaconf import Dynaconf
from loguru import logger

from mysql_backup.mysql.backends.base import Backend
from mysql_backup.mysql.backends.disk import DiskBackend
from mysql_backup.mysql.client import Client
from mysql_backup.retention import parse_existing_artifacts, rotate
from mysql_backup.utils.config import (EXIT_CONFIG, ConfigError, build_policy, check_credentials,
                                       get_list, parse_config)
from mysql_backup.utils.converters import Tier
from mysql_backup.utils.datatypes import RetentionPolicy
from mysql_backup.utils.logging import setup_logging


class CtxArgs:
    """
    Cache object for arguments between click group and commands.
    """

    def __init__(self,
                 config_folder: Path, settings: Dynaconf, policy: RetentionPolicy,
                 extension: str, backend: Backend):
        self.config_folder = Path(config_folder)
        self.settings = settings
        self.policy = policy
        self.extension = extension
        self.backend = backend

    def client(self) -> Client:
        """
        Create the MySQL client from the settings.
        """
        port = self.settings('mysql.port', default=None)
        return Client(
            host=self.settings('mysql.host', default=None),
            port=int(port) if port else None,
            user=self.settings('mysql.user', default=''),
            password=self.settings('mysql.password', default=''),
            client=self.settings('mysql.client', default='mysql'),
            dump=self.settings('mysql.dump', default='mysqldump'),
            dump_options=get_list(self.settings, 'mysql.dump_options'),
        )


def fatal(error: ConfigError):
    click.secho(str(error), fg='red', bold=True, file=sys.stderr)
    sys.exit(error.exit_code)


@click.group()
@click.option(
    '-c',
    '--config-folder',
    help='Folder where the config files are stored. /etc/mysql-backup by default.'
         ' Make sure that the user has read and write access to the folder.',
    default='/etc/mysql-backup',
)
@click.pass_context
@click.version_option()
def main(ctx, config_folder):
    """
    Create per table MySQL backups and rotate them into daily, weekly, monthly
    and yearly backups.
    """
    try:
        settings = parse_config(Path(config_folder))
        log_dir = settings('logging.dir', default=None)
        setup_logging(
            verbosity=int(settings('logging.verbosity', default=2)),
            log_dir=Path(log_dir) if log_dir else None,
            log_level=settings('logging.level', default='INFO'),
        )
        logger.info('Checking that all parameters are valid')
        if ctx.invoked_subcommand == 'backup':
            check_credentials(settings)
        policy = build_policy(settings)
        backend = DiskBackend(Path(settings('backup.dir')))
        extension = settings('backup.extension', default='sql')
    except ConfigError as e:
        fatal(e)
    except Exception as e:
        logger.exception(f'Error during config parsing! {e}')
        sys.exit(EXIT_CONFIG)
    ctx.obj = CtxArgs(config_folder, settings, policy, extension, backend)


@main.command('backup')
@click.option(
    '--skip-rotate',
    is_flag=True, show_default=True, default=False,
    help='Only dump the databases and do not apply the retention rules.'
)
@click.pass_context
def backup_command(ctx, skip_rotate):
    """
    Dump all tables of the selected databases and rotate the backups.
    This is the command for the daily cron job / timer.
    """
    args: CtxArgs = ctx.obj
    logger.info('MySQL Backup started')
    try:
        args.backend.backup_dir.mkdir(parents=True, exist_ok=True)
        failed = args.client().backup(
            backend=args.backend,
            include=get_list(args.settings, 'backup.include'),
            exclude=get_list(args.settings, 'backup.exclude'),
            extension=args.extension,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.critical(f'Backup failed! (MySQL Error): {e}')
        sys.exit(1)
    if failed:
        logger.warning(f'{failed} dumps failed. Check the log above.')

    if not skip_rotate:
        rotate(args.backend, args.policy, extension=args.extension)
    logger.info('Script ends')


@main.command('rotate')
@click.option(
    '--today',
    type=click.DateTime(formats=['%Y-%m-%d']),
    default=None,
    help='Apply the retention rules as if today was the given date (YYYY-MM-DD).'
)
@click.pass_context
def rotate_command(ctx, today):
    """
    Apply the retention rules without creating a new backup.
    """
    args: CtxArgs = ctx.obj
    rotate(args.backend, args.policy, today=today.date() if today else None,
           extension=args.extension)


@main.command('list')
@click.pass_context
def list_command(ctx):
    """
    List all existing backups.
    """
    args: CtxArgs = ctx.obj
    by_database = {}
    for tier in Tier:
        for artifact in parse_existing_artifacts(args.backend, tier, args.extension):
            by_database.setdefault(artifact.database, {}).setdefault(tier, []).append(artifact)

    if len(by_database) == 0:
        click.secho('None! You have to create a backup first...', fg='red',
                    file=sys.stderr)
        sys.exit(1)

    output = click.style('Listing backups:\n', fg='green', bold=True)
    newest_backup = None
    for database in sorted(by_database):
        output += click.style(f'{database}\n', fg='cyan', bold=True)
        for tier in Tier:
            artifacts = by_database[database].get(tier, [])
            if len(artifacts) == 0:
                continue
            output += click.style(f'\t{tier.name.capitalize()} backups:', fg='bright_green')
            for period_key in sorted({x.period_key for x in artifacts}):
                tables = sorted(x.logical_name for x in artifacts if x.period_key == period_key)
                output += click.style(f'\n\t\t{period_key}: {", ".join(tables)}', fg='yellow')
            output += '\n'
            if tier == Tier.DAILY:
                newest_backup = max(artifacts, key=lambda x: x.period_key)
        output += '\n'
    output += (
        'Call the restore command with the path of a backup file as the argument '
        'to get the restore command for it.\n'
    )
    if newest_backup:
        output += 'E.g. for the newest one:\n'
        output += click.style(
            f'mysql-backup -c {args.config_folder} restore {newest_backup.path}',
            fg='green'
        )
    click.echo(output)


@main.command('restore')
@click.argument(
    'backup',
    required=True,
)
@click.pass_context
def restore_command(ctx, backup):
    """
    Generate the restore command for the given backup file (<database>/<file>).
    You can use the output of the list command to view available backups.
    """
    args: CtxArgs = ctx.obj
    backup_to_restore = next(
        (artifact
         for tier in Tier
         for artifact in parse_existing_artifacts(args.backend, tier, args.extension)
         if artifact.path == Path(backup)),
        None
    )
    if not backup_to_restore:
        click.secho(f'No match for {backup}! Check the name!\n', file=sys.stderr,
                    fg='red', bold=True)
        ctx.invoke(list_command)
        sys.exit(1)

    try:
        client = args.client()
    except ValueError as e:
        click.secho(str(e), fg='red', file=sys.stderr)
        sys.exit(1)
    click.secho(
        f'Execute the following command to restore table {backup_to_restore.logical_name} '
        f'of {backup_to_restore.database} from the {backup_to_restore.tier} backup '
        f'{backup_to_restore.period_key}:\n',
        fg='green'
    )
    click.secho(client.restore(backup_to_restore.database,
                               args.backend.backup_dir / backup_to_restore.path), fg='yellow')


if __name__ == '__main__':
    main()
