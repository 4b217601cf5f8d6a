import os

from setuptools import find_packages
from setuptools import setup


def get_version():
    path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "demecoal", "core.py")
    with open(path) as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Unable to find the version string")


def main():
    setup(
        name="demecoal",
        version=get_version(),
        description=(
            "Spatially explicit coalescence simulation over demographic histories"
        ),
        license="GPLv3+",
        python_requires=">=3.9",
        packages=find_packages(include=["demecoal", "demecoal.*"]),
        install_requires=[
            "numpy>=1.23",
            "tskit>=0.5.5",
            "daiquiri>=3.0",
        ],
        extras_require={
            "test": [
                "pytest>=7",
                "scipy>=1.9",
            ],
        },
        entry_points={
            "console_scripts": [
                "demecoal=demecoal.cli:demecoal_main",
            ],
        },
        classifiers=[
            "Programming Language :: Python :: 3",
            "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
            "Topic :: Scientific/Engineering :: Bio-Informatics",
        ],
    )


if __name__ == "__main__":
    main()
