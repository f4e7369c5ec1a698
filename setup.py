"""
Setup script for lepton_mc package.

Installation:
    pip install -e .
    pip install -e .[dev]   # with the test suite requirements
"""

from setuptools import setup, find_packages

setup(
    name="lepton_mc",
    version="0.1.0",
    description="Forward and backward Monte Carlo transport of muons and taus",
    author="William Comaskey",
    packages=find_packages(include=["lepton_mc", "lepton_mc.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.25",
        "scipy>=1.10",
        "numba>=0.58",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": ["pytest>=7.3", "black>=23.0", "mypy>=1.3"],
    },
)
