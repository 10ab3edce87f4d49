from pathlib import Path

import pytest

from margherita.config.settings import update_global_settings


@pytest.fixture
def documents_dir(tmp_path: Path):
    """
    Point the documents location at a temporary directory for the test.
    """
    docs = tmp_path / "Documents"
    with update_global_settings() as settings:
        old_documents_dir, old_workspace_dir = settings.documents_dir, settings.workspace_dir
        settings.documents_dir = docs
        settings.workspace_dir = None
    yield docs
    with update_global_settings() as settings:
        settings.documents_dir = old_documents_dir
        settings.workspace_dir = old_workspace_dir
