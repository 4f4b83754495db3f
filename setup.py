import re
import os.path

from setuptools import setup, find_packages


with open(
    os.path.join(os.path.dirname(__file__), 'batchloader', '__init__.py')
) as f:
    VERSION = re.match(r".*__version__ = '(.*?)'", f.read(), re.S).group(1)

with open(
    os.path.join(os.path.dirname(__file__), 'README.rst')
) as f:
    DESCRIPTION = f.read()

setup(
    name='batchloader',
    version=VERSION,
    description='Batching loaders for the N+1 queries problem',
    long_description=DESCRIPTION,
    long_description_content_type='text/x-rst',
    packages=find_packages(include=['batchloader', 'batchloader.*']),
    include_package_data=True,
    license='BSD-3-Clause',
    python_requires='>=3.10',
    install_requires=[
        'prometheus_client',
        'structlog',
    ],
    extras_require={
        'sqlalchemy': [
            'sqlalchemy[asyncio]>=2.0',
        ],
        'test': [
            'pytest',
            'pytest-asyncio',
            'faker',
            'sqlalchemy[asyncio]>=2.0',
            'aiosqlite',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
)
