#!/usr/bin/python3
# Setup file for git-remote-drive
# Copyright (C) 2026 git-remote-drive contributors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

from driveremote import __version__

setup(
    name="git-remote-drive",
    version=".".join(str(x) for x in __version__),
    description="git remote helper for repositories stored in Google Drive",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.10",
    packages=["driveremote"],
    package_data={"driveremote": ["py.typed"]},
    install_requires=["urllib3>=2.2.2"],
    entry_points={
        "console_scripts": [
            "git-remote-drive = driveremote.helper:main",
        ],
    },
    test_suite="tests.test_suite",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Environment :: Console",
        "Topic :: Software Development :: Version Control :: Git",
    ],
)
