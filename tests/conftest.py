"""Shared test fixtures."""
import pytest

from app import create_app


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def app(data_dir):
    return create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir)})


@pytest.fixture
def store(app):
    return app.extensions['record_store']


@pytest.fixture
def client(app):
    return app.test_client()
