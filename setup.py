"""
SiteAudit - website conversion audit scoring and analytics export
"""
from glob import glob

from setuptools import find_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="siteaudit",
    version="0.1.0",
    description="Booking-site audit detectors, finding rules, scoring and warehouse export",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(
        include=["core", "core.*", "d3_assessment", "d3_assessment.*", "d5_scoring", "d5_scoring.*", "d10_analytics", "d10_analytics.*"]
    ),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4", "pytest-asyncio>=0.21"],
    },
    entry_points={
        "console_scripts": [
            "siteaudit=core.cli:main",
        ],
    },
    include_package_data=True,
    data_files=[("config", glob("config/*.yaml"))],
)
