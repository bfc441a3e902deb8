"""
Setup script for learnforge.

learnforge turns long-form source text into validated flashcards and quiz
questions through a generative-text provider. It serves the calling
document, flashcard and quiz services as an in-process library:

1. Chunking - sentence-aligned splitting within the context budget
2. Generation - rate-limited, retrying structured requests
3. Recovery - JSON extraction/repair, normalization, validation, dedupe

There is no command-line entry point; callers import the package.
"""

from setuptools import find_packages, setup

setup(
    name="learnforge",
    version="1.0.0",
    description="Resilient structured generation of flashcards and quiz questions",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="learnforge contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
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
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning flashcards quiz generation llm json-repair",
)
