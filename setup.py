from setuptools import setup, find_packages
from pathlib import Path

directory = Path(__file__).resolve().parent

setup(
    name="plotseries",
    version="0.1",
    description="Per-plot multi-sensor satellite reflectance time series",
    author="Pablo Felgueres",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20.0",
        "shapely>=2.0.0",
        "python-dotenv>=1.2.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "plotseries=plotseries.cli:main",
        ],
    },
)
