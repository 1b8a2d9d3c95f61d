"""Setup script for the ipalert package."""

from setuptools import find_packages, setup

setup(
    name="ipalert",
    version="0.1.0",
    description="Public IP address change and connectivity alerts",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "paho-mqtt>=2.0.0",
        "aiohttp",
        "rich",
        "psutil",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "ipalert=ipalert.monitor:main",
        ],
    },
)
