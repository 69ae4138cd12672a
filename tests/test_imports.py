"""Tests that entry-point modules import cleanly in a fresh interpreter."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parent.parent / "src"


@pytest.mark.parametrize(
    "module",
    [
        "ledgersync.cli.main",
        "ledgersync.database.factories",
        "ledgersync.domain.account",
        "ledgersync.domain.entities",
    ],
)
def test_module_imports_first(module):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))

    completed = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
        env=env,
    )

    assert completed.returncode == 0, completed.stderr
