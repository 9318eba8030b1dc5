#!/usr/bin/env python3
"""Setup script for development convenience"""

from setuptools import setup, find_packages

setup(
    name="companion-score-following",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "librosa>=0.10.0",
        "soundfile>=0.12.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "dev": [
            "black>=23.0.0",
            "pytest>=7.4.0",
            "ruff>=0.1.0",
        ],
    },
)
