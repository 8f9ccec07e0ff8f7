# src/template_auditor/utils/path_utils.py
import logging
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving package paths and template files.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the template_auditor package (where settings.json lives)."""
        return Path(__file__).resolve().parent.parent

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def collect_files(paths: Iterable[str], extensions: Iterable[str]) -> List[Path]:
        """
        Expands the given paths into template files.

        Files given explicitly are always kept; directories are searched recursively
        for files with one of the extensions. The result is sorted and de-duplicated.
        """
        suffixes = {ext.lower() for ext in extensions}
        found = set()
        for raw in paths:
            path = Path(raw)
            if path.is_file():
                found.add(path)
            elif path.is_dir():
                found.update(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in suffixes)
            else:
                logger.warning("Path does not exist, skipping: %s", path)
        return sorted(found)
