"""
ShortsProcessor setuptools build script.

Usage:
    pip install -e .
    shorts-processor            # development server
    gunicorn -c gunicorn_config.py "main:build_app()"

Requires yt-dlp and ffmpeg on PATH at runtime.
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "ShortsProcessor"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Vertical short-clip renderer and transcript service for YouTube segments",
    packages=find_namespace_packages(include=["app", "app.*"]),
    py_modules=["main"],
    install_requires=[
        "flask>=2.2",
        "gunicorn>=21.2",
        "requests>=2.28.0",
    ],
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "shorts-processor=main:main",
        ],
    },
)
