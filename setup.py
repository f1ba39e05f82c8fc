"""
Setup script for quizzer-engine.

Quizzer is a self-contained assessment engine. It serves three roles:

1. Session engine - drives a practice session and grades five question formats
2. Adaptive sampler - weights future sessions by decayed per-question proficiency
3. Reporting - validates and aggregates exported session summaries

The 'quizzer' command is the reporting entry point.
"""

from setuptools import find_packages, setup

setup(
    name="quizzer-engine",
    version="1.0.0",
    description="Assessment engine with weighted sampling and proficiency tracking",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["quizzer", "quizzer.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
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
            "quizzer=quizzer.cli:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Testing",
    ],
    keywords="quiz assessment spaced-repetition education",
)
