# setup.py
import setuptools

setuptools.setup(
    name="sheets-loader",
    version="0.1.0",
    description="Scheduled export of PostgreSQL query results into Google Sheets ranges",
    author="anikinjura",
    author_email="anikinjura@gmail.com",
    python_requires=">=3.10",
    packages=setuptools.find_packages(
        include=[
            "sheets_loader*",  # всё внутри sheets_loader/
            "config",          # сама папка config/
        ]
    ),
    install_requires=[
        "gspread>=6.0",
        "google-auth>=2.20",
        "google-auth-oauthlib>=1.0",
        "oauthlib>=3.2",
        "requests>=2.28.0",
        "psycopg2-binary>=2.9",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            # позволит запускать через `sheets-loader run` / `sheets-loader bootstrap`
            "sheets-loader = sheets_loader.runner:main",
        ],
    },
)
