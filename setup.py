#!/usr/bin/env python3
"""
Setup configuration for Playout
Command line player for a personal Takeout music service
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "requests>=2.31.0",
    "click>=8.1.7",
    "pyyaml>=6.0.1",
    "python-dotenv>=1.0.0",
    "colorama>=0.4.6",
    "tqdm>=4.66.1",
    "numpy>=1.24.0",
    "soundfile>=0.12.1",
    "sounddevice>=0.4.6",
]

setup(
    name="playout",
    version="0.9.0",
    author="Playout Team",
    description="Command line player for a personal Takeout music service",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://takeout.fm/",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Players",
    ],
    python_requires=">=3.8",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "playout=playout.main:cli",
        ],
    },
    keywords="takeout music player radio icy listenbrainz cli",
)
