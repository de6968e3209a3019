#coding:utf-8
"""A setuptools based setup module for fbsql package.
See:
https://packaging.python.org/en/latest/distributing.html
https://github.com/pypa/sampleproject
"""

# Always prefer setuptools over distutils
from setuptools import setup, find_packages
# To use a consistent encoding
from codecs import open
from os import path
from fbsql import __version__

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.rst'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='fbsql',
    version=__version__,
    description='Firebird SQL execution core for Python',
    long_description=long_description,
    long_description_content_type='text/x-rst',
    author='Pavel Císař',
    author_email='pcisar@users.sourceforge.net',
    classifiers=[
        'Development Status :: 4 - Beta',

        'Intended Audience :: Developers',

        'License :: OSI Approved :: BSD License',

        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',

        'Operating System :: POSIX :: Linux',
        'Operating System :: Microsoft :: Windows',
        'Operating System :: MacOS',

        'Topic :: Database',
],
    keywords='Firebird',
    packages=find_packages(exclude=['test']),
    install_requires=[],
    extras_require={'test': ['pytest']},
    python_requires='>=3.6',
    test_suite='test',
)
