from setuptools import find_namespace_packages, setup

setup(
    name="game-lounge",
    version="0.1.0",
    packages=find_namespace_packages(include=["lounge_shared*", "lounge_core*"]),
    package_dir={"": "."},
    python_requires=">=3.9",
    install_requires=[
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        "loguru>=0.7.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "requests>=2.31.0",
        "cachetools>=5.3.0",
        "pybreaker>=1.0.0",
        "prometheus-client>=0.17.0",
        "prometheus-fastapi-instrumentator>=6.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lounge-core=lounge_core.main:main",
        ],
    },
)
