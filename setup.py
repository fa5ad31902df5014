"""Setup configuration for k6-runner tool."""

from setuptools import setup, find_packages

setup(
    name="k6-runner",
    version="0.1.0",
    description="Batch orchestration and artifact retention for k6 load tests",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "requests>=2.31.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "k6-runner=k6_runner.cli:main",
        ],
    },
)
