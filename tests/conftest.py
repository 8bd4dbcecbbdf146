"""Shared test fixtures."""

from pathlib import Path

import pytest

from klinewaker.db.images import ImageStore
from klinewaker.db.store import DataStore
from klinewaker.journal import CatalogService, JournalService


@pytest.fixture
def temp_db(tmp_path: Path) -> DataStore:
    """Fresh database for each test."""
    return DataStore(tmp_path / "test.db")


@pytest.fixture
def image_store(tmp_path: Path) -> ImageStore:
    return ImageStore(tmp_path / "trade_images")


@pytest.fixture
def journal(temp_db: DataStore, image_store: ImageStore) -> JournalService:
    return JournalService(temp_db, image_store)


@pytest.fixture
def catalog(temp_db: DataStore) -> CatalogService:
    return CatalogService(temp_db)


@pytest.fixture
def instrument(catalog: CatalogService):
    """An instrument worth $5 per point."""
    return catalog.create_instrument("MES", 5.0)


@pytest.fixture
def account(catalog: CatalogService):
    """An account holding $1000."""
    return catalog.create_account("Main", 1000.0)
