#!/usr/bin/env python

from setuptools import setup, find_packages

setup(
    name="humanitz_admin_tools",
    version="0.1.0",
    description="Python tools for HumanitZ server player stats, playtime and identity tracking",
    author="GeNe FRAG",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.25.0",
        "pandas>=1.0.0",
        "openpyxl>=3.0.0",
        "matplotlib>=3.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "humanitz-import-stats=humanitz_admin_tools.tools.stats_importer:main",
            "humanitz-player-lookup=humanitz_admin_tools.tools.player_lookup:main",
        ],
    },
)
