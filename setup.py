#!/usr/bin/env python3
"""
Setup script for the push channel client and server
"""

from setuptools import setup, find_namespace_packages

setup(
    name="pushchannel",
    version="0.0.1",
    description="Push channel client with a matching channel server",
    packages=find_namespace_packages(include=["client", "client.*", "server", "server.*", "shared", "shared.*"]),
    install_requires=[
        "websockets==15.0",
        "httpx==0.28.1",
        "fastapi==0.115.6",
        "uvicorn==0.34.0",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'pushchannel-server=server.server:main',
            'pushchannel-client=client.cli:main',
        ],
    },
)
