# setup.py
from setuptools import setup, find_packages

setup(
    name="loyalloop",
    version="0.1.0",
    packages=find_packages(include=["loyalloop", "loyalloop.*"]),
    python_requires=">=3.9",
    install_requires=[
        "msgpack",             # state snapshots, signed call encoding
        "cryptography",        # ECDSA caller keys
        "pycryptodome",        # keccak-256
        "prometheus_client",   # metrics
        "psutil",              # monitoring
    ],
    extras_require={
        "test": ["pytest"],
    },
)
