"""
config handling for dynaconf
"""
import logging
import os
import sys
from importlib.resources import files
from pathlib import Path
from typing import List, Optional

from dynaconf import Dynaconf, Validator

from mysql_backup.utils.datatypes import RetentionPolicy

# exit codes for fatal configuration errors
EXIT_CONFIG = 1
EXIT_MISSING_USER = 11
EXIT_MISSING_PASSWORD = 12
EXIT_MISSING_WEEKDAY = 13
EXIT_MISSING_MONTHDAY = 14
EXIT_MISSING_YEARDAY = 15
EXIT_MISSING_DAILY_RETENTION = 16
EXIT_INVALID_VALUE = 17


class ConfigError(Exception):
    """
    Fatal configuration error. exit_code is used as the process exit code.
    """

    def __init__(self, exit_code: int, message: str):
        super().__init__(message)
        self.exit_code = exit_code
        self.message = message

    def __str__(self):
        return f'FATAL ERROR {self.exit_code} - {self.message}'


def parse_config(config_folder: Path) -> Dynaconf:
    """
    Parse config with dynaconf.
    Creates the default config in the folder if it does not exist yet.
    :param config_folder: folder with default.toml and config.toml
    :return: Dynaconf settings
    """
    default_config = config_folder / 'default.toml'
    if not os.path.isfile(default_config):
        try:
            config_folder.mkdir(parents=True, exist_ok=True)
            with open(default_config, 'w', encoding='utf-8') as f:
                f.write(files('mysql_backup.data').joinpath('default.toml').read_text())
        except Exception as e:
            logging.critical(f'Failed to create default config {default_config}. '
                             'Consider creating the folder writeable for this user '
                             f'or choose a different path. Error: {e}')
            sys.exit(EXIT_CONFIG)

    settings = Dynaconf(
        envvar_prefix='MYSQL_BACKUP',
        settings_files=['default.toml', 'config.toml'],
        root_path=str(config_folder),
        merge_enabled=True,
        validators=[
            Validator('backup.dir', must_exist=True),
            Validator('backup.extension', default='sql'),
            Validator('mysql.client', default='mysql'),
            Validator('mysql.dump', default='mysqldump'),
            Validator('logging.verbosity', cast=int, default=2),
            Validator('logging.level', default='INFO'),
        ]
    )
    return settings


def _get_int(settings: Dynaconf, key: str, missing_code: Optional[int] = None) -> Optional[int]:
    """
    Get an integer setting. Unset and empty values are None.
    :param settings: settings
    :param key: dotted key
    :param missing_code: raise a ConfigError with this code if the value is unset
    :return: value or None
    """
    value = settings(key, default=None)
    if value is None or value == '':
        if missing_code:
            raise ConfigError(missing_code, f'{key} must be defined')
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ConfigError(EXIT_INVALID_VALUE, f'{key} must be an integer, got {value!r}')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(EXIT_INVALID_VALUE, f'{key} must be an integer, got {value!r}')


def get_list(settings: Dynaconf, key: str) -> List[str]:
    """
    Get a list of names. Also accepts a whitespace separated string.
    """
    value = settings(key, default=None)
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return [str(x) for x in value]


def check_credentials(settings: Dynaconf):
    """
    Make sure that the user and password for the database are set.
    :raises ConfigError: if one is missing
    """
    if not settings('mysql.user', default=None):
        raise ConfigError(EXIT_MISSING_USER, 'mysql.user must be defined')
    if not settings('mysql.password', default=None):
        raise ConfigError(EXIT_MISSING_PASSWORD, 'mysql.password must be defined')


def build_policy(settings: Dynaconf) -> RetentionPolicy:
    """
    Build the retention policy from the settings.
    The boundary days and the daily retention are mandatory.
    :param settings: settings
    :return: RetentionPolicy
    :raises ConfigError: if a value is missing or invalid
    """
    values = dict(
        weekday=_get_int(settings, 'retention.weekday', EXIT_MISSING_WEEKDAY),
        monthday=_get_int(settings, 'retention.monthday', EXIT_MISSING_MONTHDAY),
        yearday=_get_int(settings, 'retention.yearday', EXIT_MISSING_YEARDAY),
        daily=_get_int(settings, 'retention.daily', EXIT_MISSING_DAILY_RETENTION),
        weekly=_get_int(settings, 'retention.weekly'),
        monthly=_get_int(settings, 'retention.monthly'),
        yearly=_get_int(settings, 'retention.yearly'),
    )
    try:
        return RetentionPolicy(**values)
    except ValueError as e:
        raise ConfigError(EXIT_INVALID_VALUE, str(e))
