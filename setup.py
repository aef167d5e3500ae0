"""Setup script for the journal press package."""
from setuptools import setup, find_packages

setup(
    name="journal-press",
    version="1.0.0",
    packages=find_packages(include=["journal_press", "journal_press.*", "journal_web", "journal_web.*"]),
    install_requires=[
        "python-docx>=0.8.11",
        "flask>=2.3.0",
        "flask-sqlalchemy>=3.0.0",
        "sqlalchemy>=2.0.0",
        "flask-login>=0.6.0",
        "flask-wtf>=1.1.0",
        "wtforms>=3.0.0",
        "email-validator>=2.0.0",
        "flask-limiter>=3.0.0",
        "itsdangerous>=2.0.0",
        "werkzeug>=2.3.0",
        "python-dotenv>=0.19.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    description="A small academic journal publishing backend: catalog, submissions and citations",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    keywords="journal publishing submission citation academic",
    include_package_data=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: Flask",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
