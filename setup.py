from setuptools import setup, find_packages

setup(
    name="skyform",
    version="0.1.0",
    description="Resource plugins translating declarative configuration into AWS API calls",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="Skyform Team",
    packages=find_packages(include=["skyform", "skyform.*"]),
    python_requires=">=3.10",
    install_requires=[
        "boto3>=1.28.0",
        "pydantic>=2.0.0",
        "click>=8.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "mypy>=1.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "skyform=skyform.cli.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
