import pytest
from prp_manager.prp_manager import setup_logging


@pytest.fixture(autouse=True)
def console_logging():
    """Bind the PRPManager logger to the stdout of the running test."""
    setup_logging()
    yield
    setup_logging()
