"""k6-runner - batch orchestration and artifact retention for k6 load tests."""

__version__ = "0.1.0"
