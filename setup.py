"""
Setup script for ecopca package.
"""

from setuptools import setup, find_packages

setup(
    name="ecopca",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
        ],
    },
    author="Ecopca Team",
    description="Principal component analysis engine for ecological microsite measurements",
    keywords="pca, ecology, eigendecomposition, correlation",
    python_requires=">=3.8",
)
