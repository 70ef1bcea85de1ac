# backend/gdd_studio/gdd_engine/run_store.py

import logging
import re
import uuid
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def slugify(idea: str) -> str:
    """Replace everything outside [a-zA-Z0-9] with '-', then lower-case."""
    return re.sub(r"[^a-zA-Z0-9]", "-", idea).lower()


class RunFolder:
    """One run's artifact directory. Files are written once, verbatim."""

    def __init__(self, path: Path):
        self.path = path

    @property
    def name(self) -> str:
        return self.path.name

    def write(self, file_name: str, content: str) -> Path:
        target = self.path / file_name
        target.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s", target)
        return target


class RunStore:
    """
    Creates run folders under the output root, named
    <uuid4>-<slugified idea>, and looks finished runs up again by name.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def folder_name(self, idea: str) -> str:
        return f"{uuid.uuid4()}-{slugify(idea)}"

    def create_run(self, idea: str) -> RunFolder:
        path = self.root / self.folder_name(idea)
        path.mkdir(parents=True, exist_ok=True)
        logger.info("Created run folder %s", path)
        return RunFolder(path)

    def find_run(self, name: str) -> Optional[RunFolder]:
        root = self.root.resolve()
        path = (root / name).resolve()
        # only direct children of the output root
        if path.parent != root or not path.is_dir():
            return None
        return RunFolder(path)
