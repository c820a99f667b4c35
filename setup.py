#!/usr/bin/env python3
"""Setup script for Mesh Architect"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / 'README.md'
long_description = readme_file.read_text() if readme_file.exists() else ''

# Read requirements
requirements_file = Path(__file__).parent / 'requirements.txt'
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text().splitlines()
        if line.strip() and not line.startswith('#')
    ]

setup(
    name='mesh-architect',
    version='0.3.1',
    description='Mesh link estimation and robustness planner for tactical radio networks',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='GPL-3.0',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    py_modules=['main', '__version__'],
    install_requires=requirements,
    extras_require={
        'test': ['pytest>=7.0.0'],
    },
    python_requires='>=3.8',
    entry_points={
        'console_scripts': [
            'mesh-architect=main:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Telecommunications Industry',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Communications :: Ham Radio',
        'Topic :: Scientific/Engineering',
    ],
    keywords='mesh radio link-budget planning fspl robustness missionproject',
    include_package_data=True,
    zip_safe=False,
)
