# setup.py
from setuptools import setup, find_packages

setup(
    name="spa_settle",
    version="0.1.0",
    description="Измерение времени «успокоения» переходов в SPA по периоду сетевой тишины",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"spa_settle": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "yarl>=1.9",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "beautifulsoup4>=4.12",
        "Jinja2>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "spa_settle=spa_settle.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
