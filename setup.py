"""
Setup script for lingua-progress.

Lingua Progress is the adaptive progression engine behind a
language-learning assistant. It serves three roles:

1. Vocabulary Scheduler - Stage-based spaced repetition per word
2. Lesson Gatekeeper - Section-by-section progression on a score threshold
3. Mistake Memory - A bounded archive fed back into content generation

The 'lingua' command drives a learner's progress from the terminal.
"""

from setuptools import find_packages, setup

setup(
    name="lingua-progress",
    version="0.1.0",
    description="Adaptive progression engine for language learning",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
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
            "lingua=src.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="language-learning spaced-repetition progression cli education",
)
