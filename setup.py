#!/usr/bin/env python3

import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="ctrdebug",
    version="0.1.0",
    description="Debugging tools for running docker containers",
    license="MIT",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=['tests']),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    entry_points={
        'console_scripts': ['ctrdebug=ctrdebug.command_line:main']
    },
    install_requires=[
        'docker>=4',
        'requests',
    ],
    extras_require={
        'test': ['pytest'],
    },
    python_requires='>=3.7',
)
