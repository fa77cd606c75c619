#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
"""The setup.py file."""

import os
import sys

from setuptools import find_packages, setup
from setuptools.command.install import install

with open("src/fs20_tx/version.py") as fh:
    for line in fh:
        if line.strip().startswith("__version__"):
            VERSION = eval(line.split("=")[-1])
            break

URL = "https://github.com/fs20-rf/fs20_rf"

with open("README.md", "r") as fh:
    LONG_DESCRIPTION = fh.read()

with open("requirements.txt") as fh:
    REQUIREMENTS = [line.strip() for line in fh if line.strip()]


class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our VERSION."""

    def run(self):
        tag = os.getenv("CIRCLE_TAG")
        if tag != VERSION:
            info = f"Git tag: {tag} does not match the version of this pkg: {VERSION}"
            sys.exit(info)


setup(
    name="fs20-rf",
    description="A gateway for FS20 RF (868 MHz) devices, via a CUL running culfw.",
    keywords=["fs20", "elv", "conrad", "cul", "culfw", "busware"],
    author="The fs20_rf contributors",
    url=URL,
    download_url=f"{URL}/archive/{VERSION}.tar.gz",
    install_requires=REQUIREMENTS,
    extras_require={"test": ["pytest>=7.4.0", "pytest-asyncio>=0.23.0"]},
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "tests.*"]),
    entry_points={"console_scripts": ["fs20_client = fs20_cli.client:main"]},
    version=VERSION,
    license="MIT",
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.11",
        "Topic :: Home Automation",
    ],
    cmdclass={
        "verify": VerifyVersionCommand,
    },
)
