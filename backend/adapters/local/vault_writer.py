"""FileSystemVaultWriter — atomic writes into a local vault directory."""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from domain.errors import VaultUnavailable, VaultWriteFailed
from ports.vault import VaultAccessPort, VaultWriterPort

logger = logging.getLogger(__name__)


def is_descendant(path: Path, root: Path) -> bool:
    """True if `path` resolves to somewhere strictly inside `root`."""
    resolved_root = root.resolve()
    resolved = path.resolve()
    return resolved != resolved_root and resolved_root in resolved.parents


class LocalVaultAccess(VaultAccessPort):
    """Scopes access to a configured vault root directory."""

    def __init__(self, vault_root: Optional[str]):
        self._vault_root = vault_root

    @contextmanager
    def scoped(self) -> Iterator[Path]:
        if not self._vault_root:
            raise VaultUnavailable(debug_detail="VAULT_ROOT is not configured")
        root = Path(self._vault_root).expanduser()
        if not root.is_dir():
            raise VaultUnavailable(debug_detail=f"vault root not found: {root}")
        logger.debug(f"Vault access acquired: {root}")
        try:
            yield root.resolve()
        finally:
            logger.debug(f"Vault access released: {root}")


class FileSystemVaultWriter(VaultWriterPort):
    def write_atomically(self, data: bytes, destination: Path, vault_root: Path) -> None:
        self._check_inside(destination, vault_root)
        self.ensure_directory(destination.parent, vault_root)

        temp_path = None
        try:
            # Sibling temp file so the final rename stays on one filesystem.
            with tempfile.NamedTemporaryFile(
                dir=destination.parent,
                prefix=f".{destination.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                temp_path = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(temp_path, destination)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error(f"Atomic write failed for {destination}: {e}")
            raise VaultWriteFailed(debug_detail=f"{destination}: {e}") from e

    def copy_atomically(self, source: Path, destination: Path, vault_root: Path) -> None:
        self._check_inside(destination, vault_root)
        self.ensure_directory(destination.parent, vault_root)

        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=destination.parent,
                prefix=f".{destination.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp, open(source, "rb") as src:
                temp_path = tmp.name
                shutil.copyfileobj(src, tmp)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(temp_path, destination)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error(f"Atomic copy failed {source} -> {destination}: {e}")
            raise VaultWriteFailed(debug_detail=f"{source} -> {destination}: {e}") from e

    def ensure_directory(self, directory: Path, vault_root: Path) -> None:
        if directory.resolve() != vault_root.resolve():
            self._check_inside(directory, vault_root)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise VaultWriteFailed(debug_detail=f"{directory}: {e}") from e

    def exists(self, path: Path) -> bool:
        return path.exists()

    @staticmethod
    def _check_inside(path: Path, vault_root: Path) -> None:
        if not is_descendant(path, vault_root):
            raise VaultWriteFailed(debug_detail=f"refusing to write outside vault: {path}")
