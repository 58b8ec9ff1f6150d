from setuptools import setup, find_packages

setup(
    name="treasury_ledger",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "numpy",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-dependency",
        ],
    },
    description="Reconciliation, split consolidation and analytics for a treasury ledger",
    python_requires=">=3.8",
)
