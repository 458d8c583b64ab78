from setuptools import setup, find_packages

setup(
    name="zion-chatbot",
    version="1.0.0",
    packages=find_packages(include=["zion", "zion.*"]),
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "structlog>=23.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "pytest-httpx>=0.30",
        ],
    },
    entry_points={
        "console_scripts": [
            "zion=zion.core.cli:main",
        ],
    },
    description="Command-line chatbot core: command dispatch and rate-limited API access.",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
