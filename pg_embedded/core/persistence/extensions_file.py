"""
Installed extensions manifest — atomic read/write of InstalledConfiguration.

Stored as JSON in the installation's share directory. The file is always
read and written whole; writes go to a temp file that is renamed over the
target so readers never see a partial file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from pg_embedded.core.data.constants import EXTENSIONS_MANIFEST
from pg_embedded.core.models.extension import InstalledConfiguration

logger = logging.getLogger(__name__)


def manifest_path(share_dir: Path) -> Path:
    return share_dir / EXTENSIONS_MANIFEST


def load_installed(path: Path) -> InstalledConfiguration:
    """Load the manifest; a missing or corrupt file yields an empty one."""
    if not path.is_file():
        logger.debug("No extensions manifest at %s", path)
        return InstalledConfiguration()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return InstalledConfiguration.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt extensions manifest %s: %s — starting fresh", path, e)
    except ValidationError as e:
        logger.warning("Invalid extensions manifest %s: %s — starting fresh", path, e)
    return InstalledConfiguration()


def save_installed(configuration: InstalledConfiguration, path: Path) -> None:
    """Write the manifest atomically (temp file + rename)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = configuration.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".extensions_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Saved extensions manifest %s (%d entries)", path, len(configuration.extensions))
