#!/usr/bin/env python
# coding: utf-8

from setuptools import setup
from pathlib import Path
import os
import re

here = Path(__file__).parent
readme = (here / 'README.md').read_text()
version = re.search(r'__version__ = "([^"]+)"', (here / 'prp_manager' / 'version.py').read_text()).group(1)
author = re.search(r'__author__ = "([^"]+)"', (here / 'prp_manager' / 'version.py').read_text()).group(1)
with open(os.path.join(here, 'requirements.txt')) as requirements_file:
    requirements = [line.strip() for line in requirements_file if line.strip() and not line.startswith('#')]
description = 'Scaffold, lint, validate and track Product Requirements Prompts'

setup(
    name='prp-manager',
    version=f"{version}",
    description=description,
    long_description=f'{readme}',
    long_description_content_type='text/markdown',
    author=author,
    license='MIT',
    packages=['prp_manager'],
    include_package_data=True,
    install_requires=requirements,
    extras_require={'test': ['pytest>=7.0', 'pytest-asyncio>=0.23']},
    python_requires='>=3.10',
    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Environment :: Console',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    entry_points={'console_scripts': [
        'prp-manager = prp_manager.prp_manager:main',
        'prp-manager-mcp = prp_manager.prp_manager_mcp:prp_manager_mcp',
    ]},
)
