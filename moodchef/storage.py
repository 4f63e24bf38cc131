import json
import os
import tempfile
from pathlib import Path
from typing import Any


class StorageLoadError(Exception):
    """Raised when a data file cannot be loaded."""
    pass


class StorageSaveError(Exception):
    """Raised when a data file cannot be saved."""
    pass


def load_json(file_path: Path | str, root_key: str, default: Any = None) -> Any:
    """Load the value under ``root_key`` from a JSON data file.

    A missing file yields ``default`` (an empty list when not given), so a
    fresh install starts with empty collections.

    Raises:
        StorageLoadError: If the file is unreadable, not valid JSON, or lacks
            ``root_key``
    """
    file_path = Path(file_path)

    if not file_path.exists():
        return [] if default is None else default

    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise StorageLoadError(f"Invalid JSON in data file {file_path}: {e}")
    except OSError as e:
        raise StorageLoadError(f"Failed to read data file {file_path}: {e}")

    if not isinstance(data, dict) or root_key not in data:
        raise StorageLoadError(f"Data file {file_path} must contain a '{root_key}' key")

    return data[root_key]


def save_json(file_path: Path | str, root_key: str, value: Any) -> None:
    """Save ``{root_key: value}`` to a JSON file with an atomic write.

    Raises:
        StorageSaveError: If the file cannot be written
    """
    write_json_atomic(file_path, {root_key: value})


def write_json_atomic(file_path: Path | str, data: Any) -> None:
    """Write JSON to ``file_path`` via a temp file in the same directory.

    Raises:
        StorageSaveError: If the file cannot be written
    """
    file_path = Path(file_path)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        # Same directory keeps the rename on one filesystem, so it is atomic
        temp_fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent,
            prefix=f".{file_path.stem}_tmp_",
            suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(temp_path, file_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    except (OSError, TypeError, ValueError) as e:
        raise StorageSaveError(f"Failed to save data to {file_path}: {e}")
