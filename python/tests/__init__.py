"""swapwatch test suite."""
