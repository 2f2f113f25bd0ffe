"""Pytest configuration and fixtures."""
from pathlib import Path
from typing import Callable, List

import pytest
from loguru import logger

from mysql_backup.mysql.backends.disk import DiskBackend
from mysql_backup.utils.datatypes import RetentionPolicy


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop all loguru sinks added by a test (the CLI adds its own)."""
    yield
    logger.remove()


@pytest.fixture
def log_messages() -> List[str]:
    """Collect the formatted loguru records of a test."""
    messages = []
    logger.add(lambda m: messages.append(m.record['level'].name + ' ' + m.record['message']),
               level='DEBUG')
    return messages


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    path = tmp_path / 'databases'
    path.mkdir()
    return path


@pytest.fixture
def backend(backup_dir: Path) -> DiskBackend:
    return DiskBackend(backup_dir)


@pytest.fixture
def policy() -> RetentionPolicy:
    return RetentionPolicy(weekday=1, monthday=1, yearday=1,
                           daily=7, weekly=4, monthly=12, yearly=None)


@pytest.fixture
def make_file(backup_dir: Path) -> Callable[..., Path]:
    """Create <backup_dir>/<database>/<name> with some content."""

    def _make(name: str, database: str = 'shop', content: str = None) -> Path:
        path = backup_dir / database / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content if content is not None else f'-- dump of {name}\n')
        return path

    return _make


@pytest.fixture
def existing(backup_dir: Path) -> Callable[[], List[str]]:
    """All files below backup_dir as sorted <database>/<file> strings."""

    def _existing() -> List[str]:
        return sorted(x.relative_to(backup_dir).as_posix()
                      for x in backup_dir.rglob('*') if x.is_file())

    return _existing
