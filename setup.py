"""
Brambl setup.py — install the key-store package.

Usage:
    pip install .                          # install the library
    pip install ".[dev]"                   # install with test and lint tools
"""

from pathlib import Path

from setuptools import find_packages, setup

HERE = Path(__file__).resolve().parent
long_description = ""
if (HERE / "README.md").exists():
    long_description = (HERE / "README.md").read_text(encoding="utf-8")

setup(
    name="brambl",
    version="1.3.0",
    description="Encrypted curve25519 key store and signer for Topl Bifrost clients",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MPL-2.0",
    author="Brambl Contributors",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*", "build"]),
    install_requires=[
        "pycryptodome>=3.21.0,<4",
        "pynacl>=1.5.0,<2",
        "base58>=2.1.0,<3",
        "rfc8785>=0.1.2,<1",
        "tomli>=2.0.0,<3;python_version<'3.11'",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "pytest-cov>=4.0",
            "mypy>=1.5",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "brambl-keys=brambl_core.cli:main_sync",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries",
    ],
)
