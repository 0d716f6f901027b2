"""Install the Discord address-whitelisting gateway."""

from setuptools import setup, find_packages

setup(
    name='discord-nginx-auth',
    version='0.2.0',
    packages=find_packages(include=['discord_auth', 'discord_auth.*']),
    python_requires='>=3.11',
    install_requires=[
        "fastapi",
        "uvicorn",
        "requests",
        "sqlalchemy>=2.0",
        "pydantic>=2",
        "pydantic-settings>=2.7",
        "python-json-logger",
    ],
    extras_require={
        "mysql": [
            "mysqlclient",
        ],
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "discord-auth=discord_auth.__main__:main",
        ],
    },
    zip_safe=False
)
