"""Filesystem helpers for cijob."""

import glob
import logging
import os
import shutil
import sys

from rich.console import Console


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def cleanup_dir(self, path: str):
        if os.path.exists(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except OSError as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)

    def remove_file(self, path: str) -> bool:
        """Removes a file if present. Returns True when nothing is left behind."""
        if not os.path.lexists(path):
            return True
        try:
            os.remove(path)
            self.logger.debug("Removed file: %s", path)
            return True
        except OSError as exc:
            self.logger.warning("Could not remove %s: %s", path, exc)
            return False

    def cleanup_paths(self, *patterns: str):
        for pattern in patterns:
            for path in glob.glob(pattern):
                if os.path.isdir(path) and not os.path.islink(path):
                    self.cleanup_dir(path)
                else:
                    self.remove_file(path)

    def append_line(self, path: str, line: str):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "a", encoding="utf-8") as file_obj:
            file_obj.write(line.rstrip("\n") + "\n")
