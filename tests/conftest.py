"""Pytest fixtures for docsearch tests."""

from pathlib import Path

import pytest

from docsearch.config import IndexConfig, SearchConfig, SearchConfigFactory, SearchConfigHolder
from docsearch.search.db import add_document, connect, ensure_index_schema, index_db_path
from docsearch.search.engine import IndexSearcherManager


class StaticConfigFactory(SearchConfigFactory):
    """Factory returning a prepared SearchConfig and counting its calls."""

    def __init__(self, config: SearchConfig):
        self.config = config
        self.calls = 0

    def create_search_config(self, request):
        self.calls += 1
        return self.config


@pytest.fixture(autouse=True)
def _close_searchers():
    yield
    IndexSearcherManager.close_all()


@pytest.fixture
def make_index(tmp_path):
    """Create an index directory and fill it with documents.

    Returns:
        Function (name, docs) -> Path of the index directory, where docs is a
        list of keyword-argument dicts for add_document()
    """

    def _make(name: str, docs: list[dict]) -> Path:
        directory = tmp_path / "indexes" / name
        directory.mkdir(parents=True, exist_ok=True)
        conn = connect(index_db_path(directory))
        try:
            ensure_index_schema(conn)
            for doc in docs:
                add_document(conn, **doc)
        finally:
            conn.close()
        return directory

    return _make


@pytest.fixture
def holder_for():
    """Build a SearchConfigHolder around fixed index configurations."""

    def _holder(index_configs: list[IndexConfig], default_index_names=None) -> SearchConfigHolder:
        return SearchConfigHolder(StaticConfigFactory(SearchConfig(index_configs, default_index_names)))

    return _holder
