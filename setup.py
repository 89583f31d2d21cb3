"""Setup script for dsfusion."""

from setuptools import setup, find_packages

setup(
    name="dsfusion",
    version="1.0.0",
    description="Dempster-Shafer evidence combination with Dempster, Yager, average and distance-weighted rules",
    author="dsfusion Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dsfusion=dsfusion.main:main",
        ],
    },
)
