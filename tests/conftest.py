"""测试共享的夹具"""
from pathlib import Path

import pytest

from importer import ImportService, InMemoryNoteStore

@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / 'uploads'

@pytest.fixture
def store() -> InMemoryNoteStore:
    return InMemoryNoteStore()

@pytest.fixture
def service(store: InMemoryNoteStore, upload_dir: Path) -> ImportService:
    return ImportService(store, upload_dir=upload_dir)
