"""Setup configuration for guildstore."""

from setuptools import setup, find_packages

setup(
    name="guildstore",
    version="0.1.0",
    description="Per-guild settings storage and live-state sync for Discord bots",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "aiosqlite>=0.19",
        "py-cord>=2.4",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "guildstore=guildstore.main:main",
        ],
    },
)
