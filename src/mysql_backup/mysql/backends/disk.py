import os
import shutil
from pathlib import Path
from typing import List

from mysql_backup.mysql.backends.base import Backend
from mysql_backup.utils.datatypes import BackupArtifact


def _relative(backup: BackupArtifact or Path or str) -> Path:
    if isinstance(backup, (Path, str)):
        return Path(backup)
    return backup.path


class DiskBackend(Backend):
    """
    Disk backend for handling file based backups on a local disk.
    """

    def __init__(self, backup_dir: Path):
        """
        :param backup_dir: main dir for backups, one sub directory per database
        """
        self.backup_dir = Path(backup_dir)

    def get_existing_backups(self, pattern: str) -> List[Path]:
        """
        Get all existing backups matching the pattern.
        :param pattern: glob for the file names
        :return: list with existing backup files.
        """
        files = [
            x.relative_to(self.backup_dir)
            for x in self.backup_dir.glob(f'*/{pattern}')
            if x.is_file()
        ]
        return sorted(files)

    def database_dir(self, database: str) -> Path:
        path = self.backup_dir / database
        path.mkdir(parents=True, exist_ok=True)
        return path

    def copy(self, source: BackupArtifact or Path, target: BackupArtifact or Path) -> None:
        # copy2 keeps the timestamps like cp -a
        shutil.copy2(self.backup_dir / _relative(source), self.backup_dir / _relative(target))

    def remove(self, backup: BackupArtifact or Path or str) -> None:
        os.remove(self.backup_dir / _relative(backup))
