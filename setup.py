#!/usr/bin/env python3
"""
Embedded-Redis Setup Script
===========================
Allows installation of the embedded-redis package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="embedded-redis",
    version="1.0.0",
    description="In-process key-value store speaking the Redis protocol",
    packages=find_packages(include=["embedded_redis", "embedded_redis.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "embedded-redis=embedded_redis.server:main",
        ],
    },
)
