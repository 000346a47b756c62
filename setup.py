import setuptools

try:
    with open("README.md", "r", encoding="utf-8") as fh:
        long_description = fh.read()
except FileNotFoundError:
    long_description = "Run one-off builds on a remote build server with local inputs"

setuptools.setup(
    name="buildrelay",
    version="0.1.0",
    description="Run one-off builds on a remote build server with local inputs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src", include=["buildrelay", "buildrelay.*"]),
    install_requires=[
        "aiohttp",
        "httpx",
        "pydantic>=2",
        "python-dotenv",
        "PyYAML",
        "rich",
        "typer",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "buildrelay=buildrelay.cli.main:app",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
)
