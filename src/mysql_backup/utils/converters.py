"""
helpers for converting dates to period keys and file names and back

All period keys are fixed width, zero padded and most significant first.
Comparing two keys of the same tier as strings therefore orders them by date.
"""
import re
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path


class Tier(Enum):
    """
    Represents the retention tiers. The value is the glob of the period key.
    """
    DAILY = '????-??-??'
    WEEKLY = '????W??'
    MONTHLY = '????-??'
    YEARLY = '????'

    def __str__(self):
        return self.name.lower()

    def pattern(self, extension: str) -> str:
        """
        Glob matching the artifacts of this tier.
        :param extension: dump file extension without the leading dot
        :return: glob pattern
        """
        return f'{self.value}.*.{extension}'


DATE_FORMAT = '%Y-%m-%d'
MONTH_FORMAT = '%Y-%m'

_KEY_PATTERNS = {
    Tier.DAILY: re.compile(r'^(\d{4})-(\d{2})-(\d{2})$'),
    Tier.WEEKLY: re.compile(r'^(\d{4})W(\d{2})$'),
    Tier.MONTHLY: re.compile(r'^(\d{4})-(\d{2})$'),
    Tier.YEARLY: re.compile(r'^(\d{4})$'),
}


def format_period_key(day: date, tier: Tier) -> str:
    """
    Get the key of the period of the given tier which contains day.
    Weeks follow the ISO calendar: the year is the ISO year, so the days of
    one week always share one key.
    :param day: calendar date
    :param tier: tier of the key
    :return: period key
    """
    match tier:
        case Tier.DAILY:
            return day.strftime(DATE_FORMAT)
        case Tier.WEEKLY:
            iso_year, iso_week, _ = day.isocalendar()
            return f'{iso_year:04d}W{iso_week:02d}'
        case Tier.MONTHLY:
            return day.strftime(MONTH_FORMAT)
        case Tier.YEARLY:
            return f'{day.year:04d}'
        case _:
            raise ValueError(f'Invalid tier: {tier}')


def parse_period_key(key: str, tier: Tier) -> date:
    """
    Convert the given period key to the first day of its period.
    :param key: period key
    :param tier: tier of the key
    :return: first day of the period
    :raises ValueError: if the key is malformed
    """
    found = _KEY_PATTERNS[tier].match(key)
    if not found:
        raise ValueError(f'Invalid {tier} period key: {key}')
    match tier:
        case Tier.DAILY:
            return datetime.strptime(key, DATE_FORMAT).date()
        case Tier.WEEKLY:
            return date.fromisocalendar(int(found.group(1)), int(found.group(2)), 1)
        case Tier.MONTHLY:
            return datetime.strptime(key, MONTH_FORMAT).date()
        case _:
            year = int(found.group(1))
            if year < 1:
                raise ValueError(f'Invalid {tier} period key: {key}')
            return date(year, 1, 1)


def tier_of_key(key: str) -> Tier:
    """
    Detect the tier by the shape of the key.
    :param key: period key
    :return: tier
    """
    for tier, pattern in _KEY_PATTERNS.items():
        if pattern.match(key):
            return tier
    raise ValueError(f'Not a period key: {key}')


def shift_period_key(day: date, tier: Tier, units: int) -> str:
    """
    Get the key of the period which lies units periods before the one
    containing day. Used for the retention thresholds.
    :param day: reference date (today)
    :param tier: tier / unit
    :param units: number of periods to go back
    :return: period key, the key of date.min if the period lies before year 1
    """
    match tier:
        case Tier.DAILY | Tier.WEEKLY:
            days = units * 7 if tier == Tier.WEEKLY else units
            if days >= (day - date.min).days:
                return format_period_key(date.min, tier)
            return format_period_key(day - timedelta(days=days), tier)
        case Tier.MONTHLY:
            # year * 12 + month never overflows a short month
            months = day.year * 12 + day.month - 1 - units
            if months < 12:
                return format_period_key(date.min, tier)
            return f'{months // 12:04d}-{months % 12 + 1:02d}'
        case Tier.YEARLY:
            return f'{max(day.year - units, date.min.year):04d}'
        case _:
            raise ValueError(f'Invalid tier: {tier}')


def format_file_name(tier: Tier, period_key: str, logical_name: str, extension: str) -> str:
    """
    Build the file name of an artifact.
    <period_key>.<logical_name>.<extension>
    """
    if not _KEY_PATTERNS[tier].match(period_key):
        raise ValueError(f'Invalid {tier} period key: {period_key}')
    return f'{period_key}.{logical_name}.{extension}'


def parse_file_name(file_path: str or Path, extension: str) -> dict:
    """
    Parse the given file name.
    <period_key>.<logical_name>.<extension>
    The logical name is everything between the first dot and the extension.
    :param file_path: file name or path, only the name is used
    :param extension: expected extension without the leading dot
    :return: Dictionary with keys: tier, period_key, date, logical_name
    """
    name = Path(file_path).name
    suffix = f'.{extension}'
    if not name.endswith(suffix):
        raise ValueError(f'Invalid file name: {file_path}')
    period_key, sep, logical_name = name[:-len(suffix)].partition('.')
    if not sep or not logical_name:
        raise ValueError(f'Invalid file name: {file_path}')
    tier = tier_of_key(period_key)
    return {
        'tier': tier,
        'period_key': period_key,
        'date': parse_period_key(period_key, tier),
        'logical_name': logical_name,
    }
