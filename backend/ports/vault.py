"""VaultWriterPort — abstract interface for persisting files into the vault."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from pathlib import Path


class VaultAccessPort(ABC):
    @abstractmethod
    def scoped(self) -> AbstractContextManager[Path]:
        """Hold access to the vault root for the duration of the `with` block."""


class VaultWriterPort(ABC):
    @abstractmethod
    def write_atomically(self, data: bytes, destination: Path, vault_root: Path) -> None:
        """Write `data` so a partial file is never visible at `destination`."""

    @abstractmethod
    def copy_atomically(self, source: Path, destination: Path, vault_root: Path) -> None:
        """Copy a file into the vault with the same atomicity guarantee."""

    @abstractmethod
    def ensure_directory(self, directory: Path, vault_root: Path) -> None:
        """Create `directory` (and parents) inside the vault."""

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Whether something already occupies `path`."""
