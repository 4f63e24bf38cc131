from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

ROOT = Path(__file__).resolve().parent.parent


def test_package_listed_explicitly():
    """moodchef/ has no __init__.py, so regular discovery would ship an empty wheel."""
    assert not (ROOT / "moodchef" / "__init__.py").exists()

    with open(ROOT / "pyproject.toml", "rb") as f:
        pyproject = tomllib.load(f)

    assert pyproject["tool"]["setuptools"]["packages"] == ["moodchef"]
