from setuptools import setup, find_packages

setup(
    name="sitemap-request-list",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "aiohttp>=3.9.0",
        "pydantic>=2.0.0",
        "redis>=5.0.0",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
)
