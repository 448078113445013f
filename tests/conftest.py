"""Global pytest configuration for cfnscan tests."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC_ROOT = _REPO_ROOT / "src"

# Make both the repository root (for the `tests` helpers package) and src/
# (for `cfnscan` without an install) importable.
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))
if str(_SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(_SRC_ROOT))

from cfnscan.template import parse  # noqa: E402

TEMPLATES_DIR = Path(__file__).resolve().parent / "fixtures" / "templates"


def dedent_template(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


@pytest.fixture
def templates_dir() -> Path:
    return TEMPLATES_DIR


@pytest.fixture
def fixture_bytes():
    def _read(name: str) -> bytes:
        return (TEMPLATES_DIR / name).read_bytes()

    return _read


@pytest.fixture
def load_template():
    """Parse an indented template literal; line 1 is its first non-blank line."""

    def _load(text: str, filename: str = "template.yaml"):
        return parse(dedent_template(text), filename)

    return _load
