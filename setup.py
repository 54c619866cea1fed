"""
Setup script for cadence-scheduler.

Cadence is the decision core of a spaced-repetition tutoring product:

1. FSRS scheduling - per-item stability/difficulty/state updates
2. Queue pipeline - eligibility, priority, balancing, interleaving
3. Session assembly - load-aware truncation and mastery boosts

The 'cadence' command drives the core from JSON files.
"""

from setuptools import find_packages, setup

setup(
    name="cadence-scheduler",
    version="1.0.0",
    description="Spaced-repetition scheduling core: FSRS, queues and load-aware sessions",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["cadence", "cadence.*"]),
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cadence=cadence.cli:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="spaced-repetition fsrs scheduling education",
)
