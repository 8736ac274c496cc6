"""Package setup for Auto Tax Engine."""

from setuptools import setup, find_packages

setup(
    name="auto-tax-engine",
    version="1.0.0",
    description="Vehicle retail and lease tax calculation across US state tax regimes",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["auto_tax_engine", "auto_tax_engine.*"]),
    python_requires=">=3.10",
    install_requires=[
        "rich>=13.0",
    ],
    extras_require={
        "tests": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "tax-engine=auto_tax_engine.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Financial and Insurance Industry",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Financial :: Accounting",
    ],
    keywords="sales-tax vehicle lease dealership reciprocity multi-state",
)
