#!/usr/bin/env python
'''
Created on 2026/10/18
'''
from setuptools import setup, find_packages

VERSION = '0.1.0'

setup(name='zkwire',
      version=VERSION,
      description='Synchronous ZooKeeper client speaking the binary wire protocol over a blocking socket.',
      license="http://www.apache.org/licenses/LICENSE-2.0",
      keywords=['ZooKeeper', 'Jute', 'coordination'],
      test_suite = 'tests',
      python_requires = '>=3.5',
      install_requires = ["nstruct>=1.1.1"],
      packages=find_packages(exclude=("tests","tests.*")))
