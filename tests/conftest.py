import os
import pytest

from stairval.notepad import create_notepad


@pytest.fixture(scope="session")
def fpath_test_dir() -> str:
    """
    Path to `tests/data/` folder.
    """
    return os.path.join(os.path.dirname(__file__), "data")


@pytest.fixture(scope="session")
def unit_root(fpath_test_dir: str) -> str:
    """
    Root name of the sample units: `unit1.txt`, `unit2.txt` and `unit3.txt`.
    """
    return os.path.join(fpath_test_dir, "unit")


@pytest.fixture
def notepad():
    return create_notepad("test")
