from setuptools import find_packages, setup

setup(
    name="dlgate",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "requests",
        "click",
        "sqlalchemy>=2.0",
        "minio>=7.1,<8",
        "urllib3",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "dlgate=dlgate.cli:cli",
        ],
    },
)
