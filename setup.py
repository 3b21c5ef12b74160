#!/usr/bin/env python3
"""Package configuration."""

import pathlib

import setuptools  # type: ignore


def get_long_description() -> str:
    """Fetch the long description from README.md."""
    with pathlib.Path("README.md").open(encoding="utf-8") as readme:
        return readme.read()


def get_version() -> str:
    """Fetch the version from the __version__ string in the code."""
    with pathlib.Path("irclink/_version.py").open(encoding="utf-8") as code:
        for line in code.readlines():
            if line.startswith("__version__"):
                delim = '"' if '"' in line else "'"
                return line.split(delim)[1]
        raise RuntimeError("Unable to find version string.")


setuptools.setup(
    name="irclink",
    version=get_version(),
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    description="asyncio IRC client library",
    license="Apache2",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Framework :: AsyncIO",
        "Topic :: Communications :: Chat :: Internet Relay Chat",
    ],
    keywords=["irc", "client", "asyncio"],
    python_requires=">=3.9",
    # fmt: off
    install_requires=[
        "prometheus_client",
        "structlog",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pyyaml",
        ],
    },
    entry_points={
        "console_scripts": [
            "irclink = irclink:run",
        ],
    },
    # fmt: on
    zip_safe=False,
)
