#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
# This is a python install script written for pyEllipsoid python package.
# pip3 install --upgrade setuptools wheel build
#
# py -3 setup.py sdist
# py -3 setup.py bdist_wheel
# pip3 install -e . # -e makes symlinks to the source folder and allows to edit the source code without having to reinstall the package
# pip3 install -e .[test] # also installs pytest and scipy for the tests

import io
import os
from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))

with io.open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name='pyEllipsoid',
    version='1.0.0',
    description=("Constrained least squares ellipsoid fit for 3-axis sensor calibration." ),
    url='https://github.com/uutzinger/pyEllipsoid',
    author='Urs Utzinger',
    author_email='uutzinger@gmail.com',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MIT',
    keywords='ellipsoid, fit, quadric, calibration, magnetometer, accelerometer, IMU',
    packages = find_packages(include=['pyEllipsoid', 'pyEllipsoid.*']),
    install_requires=['numpy>1.0'],
    extras_require={
        'test': ['pytest', 'scipy'],
    },
    classifiers=[
        # See https://pypi.python.org/pypi?%3Aaction=list_classifiers
        #   3 - Alpha
        #   4 - Beta
        #   5 - Production/Stable
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Scientific/Engineering :: Mathematics',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3'
    ]
)
