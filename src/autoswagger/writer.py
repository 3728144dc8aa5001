"""Write the generated document to disk in one step."""

import json
import logging
import os
import stat
import tempfile
from pathlib import Path

import yaml

from autoswagger.errors import OutputWriteError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


def dump_document(document: dict, path: Path) -> str:
    if path.suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    # json.dumps never escapes "/", so URLs stay readable
    return json.dumps(document, indent=4, ensure_ascii=False) + "\n"


def _file_mode(path: Path) -> int:
    """Mode for the written file: the existing file's, else 0666 minus the umask."""
    if path.is_file():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def save_document(document: dict, path: str | Path) -> Path:
    """Serialize ``document`` and atomically replace ``path`` with it."""
    path = Path(path)
    tmp_name = None
    try:
        text = dump_document(document, path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        # mkstemp creates 0600 files
        os.chmod(tmp_name, _file_mode(path))
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise OutputWriteError(path, str(exc)) from exc

    logger.debug("Wrote %d bytes to %s", len(text), path)
    return path
