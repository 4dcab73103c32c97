#!/usr/bin/env python3
"""
TinyCache Setup Script
======================
Allows installation of the tiny-cache package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # With test dependencies
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="tiny-cache",
    version="0.1.0",
    packages=find_packages(include=["tinycache", "tinycache.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "tiny-cache=tinycache.server:main",
        ],
    },
)
