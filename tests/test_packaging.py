"""Package metadata points at files that ship with the project."""

import re
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def test_readme_declared_in_pyproject_exists():
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    readme = re.search(r'^readme = "([^"]+)"$', pyproject, re.MULTILINE).group(1)
    assert readme == "README.md"
    assert (ROOT / readme).read_text(encoding="utf-8").startswith("# Alchemist Forge")
