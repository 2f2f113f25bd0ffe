from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from mysql_backup.utils.datatypes import BackupArtifact


class Backend(ABC):
    """
    ABC for backend implementations.
    Implements how to list, copy and delete artifacts of a backup root.
    Paths are relative to the backup root: <database>/<file name>.
    """

    @abstractmethod
    def get_existing_backups(self, pattern: str) -> List[Path]:
        """
        Returns the sorted list of artifacts matching the glob pattern
        in all database directories.
        :param pattern: glob for the file name
        """
        pass

    @abstractmethod
    def database_dir(self, database: str) -> Path:
        """
        Returns the directory of the given database. Creates it if needed.
        """
        pass

    @abstractmethod
    def copy(self, source: BackupArtifact or Path, target: BackupArtifact or Path) -> None:
        """
        Copies an artifact. An existing target is overwritten.
        """
        pass

    @abstractmethod
    def remove(self, backup: BackupArtifact or Path) -> None:
        """
        Removes the artifact.
        :param backup: The artifact to remove.
        """
        pass
