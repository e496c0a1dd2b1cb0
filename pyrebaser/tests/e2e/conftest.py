"""Configuration for pytest."""

# Import fixtures to make them available to all tests
from pyrebaser.tests.e2e.fixtures import stack_repo  # noqa: F401
