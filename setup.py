"""
Taskboard setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="taskboard",
    version="1.0.0",
    description="Taskboard — kanban task tracker client",
    packages=find_packages(include=["taskboard", "taskboard.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "taskboard=taskboard.cli:main",
        ],
    },
    install_requires=[
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
