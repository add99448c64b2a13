"""
Setup script for learnflow.

LearnFlow is the server-side progression engine of the LearnFlow learning
platform: XP and levels, daily streaks, achievements, and learning paths
with sequential module unlocking and cached AI-generated lessons.

The 'learnflow' command is the administration CLI; the API is served with
``python main.py`` or ``uvicorn learnflow.api.main:app``.
"""

from setuptools import find_packages, setup

setup(
    name="learnflow",
    version="1.0.0",
    description="Progression engine for the LearnFlow learning platform",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="LearnFlow",
    packages=find_packages(include=["learnflow", "learnflow.*"]),
    py_modules=["config", "main"],
    python_requires=">=3.11",
    install_requires=[
        # API
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # AI lesson generation
        "google-generativeai>=0.5.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "httpx>=0.25.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "learnflow=learnflow.cli.main:app",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
    ],
    keywords="learning gamification xp streaks achievements education",
)
