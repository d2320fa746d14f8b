#!/usr/bin/env python

from setuptools import setup, find_packages
from pathlib import Path


setup(
    name="dynreg",
    version="0.1.0",
    description="Dynamic service registrations for runtime compiled scripts",
    long_description=Path("README.md").read_text(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    packages=find_packages(include=["dynreg", "dynreg.*"]),
    include_package_data=True,
    python_requires=">=3.9",
    zip_safe=False,
    install_requires=[
        "attrs",
        "blinker",
        "typing-extensions",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
