import decimal
import types
from collections import OrderedDict

import pytest

from guarded_yaml import Allowlist


@pytest.fixture
def allowlist():
    """An empty allowlist: only core YAML types resolve."""
    return Allowlist()


@pytest.fixture
def app_allowlist():
    """An allowlist configured the way an application would at start-up."""
    return Allowlist(
        tags=["!binary", "!float", "!timestamp", "!sym", "!str"],
        classes=[decimal.Decimal, types.SimpleNamespace, OrderedDict, set, frozenset],
    )


@pytest.fixture
def write_file(tmp_path):
    """Write ``content`` to ``tmp_path / name`` and return the path."""
    def write(name, content):
        path = tmp_path / name
        path.write_text(content)
        return path
    return write
