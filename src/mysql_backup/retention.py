"""
Tiered retention of the dump files.

Expired daily backups are copied to the weekly, monthly and yearly tiers when
their date matches the configured day, and removed afterwards. Expired weekly,
monthly and yearly backups are removed.
"""
from datetime import date
from typing import List, Optional

from loguru import logger

from mysql_backup.mysql.backends.base import Backend
from mysql_backup.utils.converters import Tier, parse_file_name, shift_period_key
from mysql_backup.utils.datatypes import COARSER_TIERS, BackupArtifact, RetentionPolicy


class RotationSummary:
    """
    Counters of one rotation run.
    """

    def __init__(self):
        self.kept = 0
        self.promoted = 0
        self.deleted = 0
        self.failed = 0

    def __str__(self):
        return (f'{self.kept} kept, {self.promoted} promoted, {self.deleted} deleted, '
                f'{self.failed} failed')

    def merge(self, other: 'RotationSummary') -> 'RotationSummary':
        self.kept += other.kept
        self.promoted += other.promoted
        self.deleted += other.deleted
        self.failed += other.failed
        return self


def parse_existing_artifacts(backend: Backend, tier: Tier,
                             extension: str = 'sql') -> List[BackupArtifact]:
    """
    Get all existing artifacts of one tier.
    :param backend: storage backend
    :param tier: tier to load
    :param extension: dump file extension
    :return: list of artifacts, ordered by database and file name
    """
    artifacts = []
    for file in backend.get_existing_backups(tier.pattern(extension)):
        try:
            data = parse_file_name(file, extension)
        except ValueError:
            logger.warning(f'Invalid file name in backup dir: {file}')
            continue
        if data['tier'] != tier:
            logger.warning(f'Invalid {tier} file name in backup dir: {file}')
            continue
        artifacts.append(BackupArtifact(
            tier=tier,
            period_key=data['period_key'],
            logical_name=data['logical_name'],
            database=file.parent.name,
            extension=extension,
        ))
    return artifacts


def rotate_daily(backend: Backend, policy: RetentionPolicy, today: date,
                 extension: str = 'sql') -> RotationSummary:
    """
    Promote and remove the daily backups older than the daily retention.
    A daily backup is only removed after all of its promotions succeeded.
    :param backend: storage backend
    :param policy: retention policy
    :param today: reference date
    :param extension: dump file extension
    :return: summary
    """
    summary = RotationSummary()
    threshold = shift_period_key(today, Tier.DAILY, policy.daily)
    logger.debug(f'Removing daily files prior to {threshold}')

    for artifact in parse_existing_artifacts(backend, Tier.DAILY, extension):
        if artifact.period_key >= threshold:
            summary.kept += 1
            continue

        promoted = True
        for tier in COARSER_TIERS:
            if not policy.boundary_matches(tier, artifact.date):
                continue
            target = artifact.promote(tier)
            try:
                backend.copy(artifact, target)
            except OSError as e:
                logger.error(f'Could not save {artifact.path} as {tier} {target.path}: {e}')
                promoted = False
                continue
            summary.promoted += 1
            logger.debug(f'Saving daily file {artifact.path} as {tier} {target.path}')

        if not promoted:
            summary.failed += 1
            logger.warning(f'Keeping daily file {artifact.path} until it has been promoted')
            continue

        try:
            backend.remove(artifact)
        except OSError as e:
            summary.failed += 1
            logger.error(f'Could not delete {artifact.path}: {e}')
            continue
        summary.deleted += 1
        logger.debug(f'Removing old daily file {artifact.path}')
    return summary


def expire_tier(backend: Backend, tier: Tier, retention: Optional[int], today: date,
                extension: str = 'sql') -> RotationSummary:
    """
    Remove the backups of a weekly, monthly or yearly tier which are older
    than the retention. Nothing is removed if retention is None.
    :param backend: storage backend
    :param tier: tier to clean
    :param retention: number of weeks/months/years to keep
    :param today: reference date
    :param extension: dump file extension
    :return: summary
    """
    summary = RotationSummary()
    if retention is None:
        logger.debug(f'Keeping all {tier} files (no retention configured)')
        return summary

    threshold = shift_period_key(today, tier, retention)
    logger.debug(f'Removing {tier} files prior to {threshold}')
    for artifact in parse_existing_artifacts(backend, tier, extension):
        if artifact.period_key >= threshold:
            summary.kept += 1
            continue
        try:
            backend.remove(artifact)
        except OSError as e:
            summary.failed += 1
            logger.error(f'Could not delete {artifact.path}: {e}')
            continue
        summary.deleted += 1
        logger.debug(f'Removing old {tier} file {artifact.path}')
    return summary


def rotate(backend: Backend, policy: RetentionPolicy, today: Optional[date] = None,
           extension: str = 'sql') -> RotationSummary:
    """
    Apply the whole retention policy: daily files first, then the weekly,
    monthly and yearly tiers.
    :param backend: storage backend
    :param policy: retention policy
    :param today: reference date, defaults to the current date
    :param extension: dump file extension
    :return: summary of all tiers
    """
    today = today or date.today()
    logger.info('Cleaning up old backup files')
    summary = rotate_daily(backend, policy, today, extension)
    for tier in COARSER_TIERS:
        summary.merge(expire_tier(backend, tier, policy.retention(tier), today, extension))
    logger.info(f'Housekeeping phase complete: {summary}')
    return summary
