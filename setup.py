import os
from setuptools import setup

requirements = list(
    open(os.path.join(os.path.dirname(__file__), "requirements.txt"), "r").readlines()
)

setup(
    name="python-tdsbind",
    version="1.0.0",
    description="Python DBAPI driver for MSSQL with typed parameter binding and bulk copy, built on pytds",
    license="MIT",
    packages=["tdsbind"],
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    zip_safe=True,
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["pytest"],
    },
)
