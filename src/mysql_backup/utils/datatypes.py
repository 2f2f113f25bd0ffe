"""
Contains classes representing backup artifacts and the retention policy.
"""
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from .converters import Tier, format_file_name, format_period_key, parse_period_key

COARSER_TIERS = (Tier.WEEKLY, Tier.MONTHLY, Tier.YEARLY)


class BackupArtifact:
    """
    One dump of one table in one tier.
    """

    def __init__(self, tier: Tier, period_key: str, logical_name: str, database: str,
                 extension: str = 'sql'):
        """
        :param tier: tier of the artifact
        :param period_key: period key of the tier, e.g. 2024-01-15 or 2024W03
        :param logical_name: table name, kept verbatim across tiers
        :param database: database / directory of the artifact
        :param extension: dump file extension
        """
        self.tier = tier
        self.period_key = period_key
        self.logical_name = logical_name
        self.database = database
        self.extension = extension

    def __str__(self):
        return f'{self.tier.name.capitalize()} Backup {self.path}'

    def __eq__(self, other):
        if not isinstance(other, BackupArtifact):
            return NotImplemented
        return self.path == other.path

    def __hash__(self):
        return hash(self.path)

    @property
    def file_name(self) -> str:
        return format_file_name(self.tier, self.period_key, self.logical_name, self.extension)

    @property
    def path(self) -> Path:
        """
        path relative to the backup root
        """
        return Path(self.database) / self.file_name

    @property
    def date(self) -> date:
        """
        first day of the period
        """
        return parse_period_key(self.period_key, self.tier)

    def promote(self, tier: Tier) -> 'BackupArtifact':
        """
        Get the artifact this one becomes in a coarser tier.
        (The file still has to be copied!)
        :param tier: target tier
        :return: promoted artifact
        """
        if tier == Tier.DAILY:
            raise ValueError('Cannot promote to the daily tier')
        return BackupArtifact(
            tier=tier,
            period_key=format_period_key(self.date, tier),
            logical_name=self.logical_name,
            database=self.database,
            extension=self.extension,
        )


@dataclass(frozen=True)
class RetentionPolicy:
    """
    Boundary rules and retention counts. Built once from the config.
    A retention of None keeps the tier forever.
    """
    weekday: int
    monthday: int
    yearday: int
    daily: int
    weekly: Optional[int] = None
    monthly: Optional[int] = None
    yearly: Optional[int] = None

    def __post_init__(self):
        for name, low, high in (('weekday', 1, 7), ('monthday', 1, 31), ('yearday', 1, 366)):
            value = getattr(self, name)
            if not low <= value <= high:
                raise ValueError(f'{name} must be between {low} and {high}, got {value}')
        if self.daily < 1:
            raise ValueError(f'daily retention must be a positive integer, got {self.daily}')
        for name in ('weekly', 'monthly', 'yearly'):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f'{name} retention must be a positive integer, got {value}')

    def retention(self, tier: Tier) -> Optional[int]:
        return getattr(self, tier.name.lower())

    def boundary_matches(self, tier: Tier, day: date) -> bool:
        """
        Check whether the daily backup of the given day is promoted to tier.
        :param tier: weekly, monthly or yearly
        :param day: date of the daily backup
        :return: True if day is the configured day of the week/month/year
        """
        match tier:
            case Tier.WEEKLY:
                return day.isoweekday() == self.weekday
            case Tier.MONTHLY:
                return day.day == self.monthday
            case Tier.YEARLY:
                return day.timetuple().tm_yday == self.yearday
            case _:
                return False
