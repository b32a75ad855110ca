# setup.py
from setuptools import setup, find_packages

setup(
    name="site_reader",
    version="0.1.0",
    description="Асинхронный сервис извлечения контента SiteReader: страницы, обход сайта, видео",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"site_reader": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "jinja2>=3.1",
        "markdownify>=0.11",
        "playwright>=1.40",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "trafilatura>=1.12",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "site-reader=site_reader.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
