import pandas as pd
import pytest
from click.testing import CliRunner

from BMT.__main__ import main
from BMT.unifier import unify_unit_files, unit_file_paths

PATIENT_GENES = ["AGCT", "CCGA", "TTAG", "GGCA", "ATAT"]


@pytest.fixture
def database_path(tmp_path, unit_root, notepad) -> str:
    path = tmp_path / "database.txt"
    unify_unit_files(unit_file_paths(unit_root, 3), str(path), notepad)
    return str(path)


def test_find_donors_prints_numbered_list(database_path):
    runner = CliRunner()
    result = runner.invoke(
        main, ["find-donors", "-d", database_path, "-g", *PATIENT_GENES, "-m", "5"]
    )
    assert result.exit_code == 0, result.output
    assert "Potential Donors Details" in result.output
    assert f"1. {'Alice Smith':<30} 100000001" in result.output
    assert f"2. {'Erin Moss':<30} 100000005" in result.output
    assert "3. " not in result.output


def test_find_donors_none_found(database_path):
    runner = CliRunner()
    result = runner.invoke(
        main, ["find-donors", "-d", database_path, "-g", *PATIENT_GENES, "-m", "6"]
    )
    assert result.exit_code == 0, result.output
    assert "No potential donors found." in result.output


def test_find_donors_exports_csv(database_path, tmp_path):
    runner = CliRunner()
    out = tmp_path / "donors.csv"
    result = runner.invoke(
        main,
        ["find-donors", "-d", database_path, "-g", *PATIENT_GENES, "-m", "4", "-o", str(out)],
    )
    assert result.exit_code == 0, result.output
    table = pd.read_csv(out, dtype=str)
    assert table["name"].tolist() == ["Alice Smith", "Dave Jones", "Erin Moss"]


def test_find_donors_missing_database_is_fatal(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["find-donors", "-d", str(tmp_path / "nope.txt"), "-g", *PATIENT_GENES, "-m", "1"],
    )
    assert result.exit_code == 1
    assert "Could not open file" in result.output


def test_find_donors_rejects_bad_input(database_path):
    runner = CliRunner()
    negative = runner.invoke(
        main, ["find-donors", "-d", database_path, "-g", *PATIENT_GENES, "-m", "-1"]
    )
    assert negative.exit_code == 2

    overlong = runner.invoke(
        main,
        ["find-donors", "-d", database_path, "-g", "A" * 22, "B", "C", "D", "E", "-m", "1"],
    )
    assert overlong.exit_code == 2
