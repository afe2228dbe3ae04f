#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""The setup script."""

from setuptools import setup, find_packages

with open('README.rst') as readme_file:
    readme = readme_file.read()

with open('requirements.txt') as r:
    requirements = [line.strip() for line in r if line.strip()]

test_requirements = ['pytest', ]

setup(
    name='singlenode',
    version='0.1.0',
    description='Install and remove a single node kubeadm cluster',
    long_description=readme,
    long_description_content_type='text/x-rst',
    packages=find_packages(include=['singlenode', 'singlenode.*']),
    python_requires='>=3.8',
    install_requires=requirements,
    extras_require={'test': test_requirements},
    entry_points={
        'console_scripts': ['singlenode=singlenode.singlenode:run'],
    },
)
