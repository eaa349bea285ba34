#!/usr/bin/env python
"""Setuptools distribution file."""
import os
from setuptools import setup


def _get_here(fname):
    return os.path.join(os.path.dirname(__file__), fname)


def _get_long_description(fname, encoding='utf8'):
    return open(fname, 'r', encoding=encoding).read()


setup(name='telnetmux',
      # keep in sync w/telnetmux/__init__.py manually for now, please!
      version='1.0.0',
      license='ISC',
      author='telnetmux contributors',
      description="Telnet terminal concentrator, multiplexing clients onto numbered lines",
      long_description=_get_long_description(fname=_get_here('README.rst')),
      packages=['telnetmux'],
      package_data={'': ['README.rst'], },
      python_requires='>=3.7',
      extras_require={
          'test': ['pytest', 'pytest-asyncio'],
      },
      platforms='any',
      zip_safe=True,
      keywords=', '.join(('telnet', 'server', 'terminal', 'concentrator',
                          'multiplexer', 'line', 'asyncio')),
      classifiers=['License :: OSI Approved :: ISC License (ISCL)',
                   'Programming Language :: Python :: 3',
                   'Intended Audience :: Developers',
                   'Development Status :: 4 - Beta',
                   'Topic :: System :: Networking',
                   'Topic :: Terminals :: Telnet',
                   'Topic :: Internet',
                   ],
      )
