import re

from setuptools import setup

with open("taprootsend/__init__.py") as init_file:
    version = re.search(r'^__version__ = "([^"]+)"', init_file.read(), re.M).group(1)

with open("README.md") as readme:
    long_description = readme.read()

setup(
    name="taproot-send",
    version=version,
    description="Send the taproot UTXO of a single Bitcoin key",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    keywords="bitcoin taproot psbt schnorr esplora",
    python_requires=">=3.9",
    install_requires=[
        "base58check>=1.0.2,<2.0",
        "coincurve>=18.0.0",
        "ecdsa>=0.18",
        "sympy>=1.2,<2.0",
        "bech32>=1.2.0",
        "requests>=2.25",
    ],
    extras_require={
        "test": ["pytest"],
    },
    packages=["taprootsend"],
    entry_points={
        "console_scripts": ["taprootsend=taprootsend.cli:main"],
    },
    zip_safe=False,
)
