"""Archive helpers for cijob."""

import os
import shutil
import tarfile
from pathlib import Path

from cijob.errors import OperationFailure


class ArchiveService:
    """Encapsulates safe tarball extraction and creation."""

    def is_within_dir(self, base_dir: Path, candidate: Path) -> bool:
        try:
            return os.path.commonpath([str(base_dir), str(candidate)]) == str(base_dir)
        except ValueError:
            return False

    def safe_extract_tar(self, tar_path: str, destination_dir: str):
        base = Path(destination_dir).resolve()

        try:
            with tarfile.open(tar_path, "r:*") as tar_ref:
                members = tar_ref.getmembers()
                for member in members:
                    target_path = (base / member.name).resolve()

                    if not self.is_within_dir(base, target_path):
                        raise OperationFailure(
                            f"Unsafe archive entry detected: `{member.name}`. "
                            "Archive extraction aborted to prevent path traversal."
                        )

                    if member.issym() or member.islnk():
                        raise OperationFailure(
                            f"Unsafe archive entry detected: `{member.name}` is a link."
                        )

                    if not (member.isdir() or member.isfile()):
                        raise OperationFailure(
                            f"Unsupported archive entry type: `{member.name}`."
                        )

                for member in members:
                    target_path = (base / member.name).resolve()

                    if member.isdir():
                        target_path.mkdir(parents=True, exist_ok=True)
                        continue

                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    source = tar_ref.extractfile(member)
                    with source, open(target_path, "wb") as dst:
                        shutil.copyfileobj(source, dst)
                    os.chmod(target_path, member.mode & 0o755 | 0o600)
        except tarfile.TarError as exc:
            raise OperationFailure(f"Invalid tar archive: {tar_path}") from exc

    def create_tar_gz(self, source_dir: str, archive_path: str) -> str:
        if not os.path.isdir(source_dir):
            raise OperationFailure(f"Nothing to archive: {source_dir} does not exist.")

        try:
            with tarfile.open(archive_path, "w:gz") as tar_ref:
                tar_ref.add(source_dir, arcname=os.path.basename(os.path.normpath(source_dir)))
        except (tarfile.TarError, OSError) as exc:
            raise OperationFailure(f"Could not create archive {archive_path}: {exc}") from exc

        return archive_path
