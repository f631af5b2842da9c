"""Setup script for pbs_dose package."""

from setuptools import setup, find_packages

setup(
    name='pbs_dose',
    version='1.0',
    packages=find_packages(include=['pbs_dose', 'pbs_dose.*']),
    package_data={'pbs_dose.config': ['defaults.yaml']},
    python_requires='>=3.9',
    install_requires=[
        'numpy>=1.20.0',
        'PyYAML>=5.4',
        'h5py>=3.0',
        'matplotlib>=3.3.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'pbs-dose=pbs_dose.cli:main',
        ],
    },
)
