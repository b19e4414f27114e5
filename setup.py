from setuptools import setup, find_packages

setup(
    name="snfkpi",
    version="1.0.0",
    packages=find_packages(include=["snfkpi", "snfkpi.*"]),
    install_requires=[
        "pandas>=2.0",
        "numpy>=1.24",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["snfkpi=snfkpi.cli:main"],
    },
    python_requires=">=3.8",
    description="KPI calculation and denominator resolution engine for SNF and senior living portfolios",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ]
)
