from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest
import pytest_asyncio

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

ROOT = TESTS_DIR.parent
for extra in (ROOT, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import PayloadFactory, WorkspaceBuilder  # noqa: E402

from quiz_bank.bank.notifier import ChangeNotifier  # noqa: E402
from quiz_bank.bank.store import RecordStore  # noqa: E402
from quiz_bank.core import workspace as workspace_mod  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep every test away from the real ~/.quiz-bank-data."""

    monkeypatch.setenv(workspace_mod.WORKSPACE_ENV, str(tmp_path / "home"))
    monkeypatch.delenv("QUIZ_BANK_CONFIG", raising=False)
    yield
    names = [
        name
        for name in logging.root.manager.loggerDict
        if name == "quiz_bank" or name.startswith("quiz_bank.")
    ]
    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def payloads() -> PayloadFactory:
    return PayloadFactory()


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def bank_path(tmp_path: Path) -> Path:
    return tmp_path / "bank" / "questions.json"


@pytest_asyncio.fixture
async def store(bank_path: Path, notifier: ChangeNotifier) -> RecordStore:
    return await RecordStore.open(bank_path, notifier=notifier)
