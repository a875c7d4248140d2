from setuptools import find_namespace_packages, setup

setup(
    name="kaito",
    version="0.0.0",
    description="Transparently decompress gzip, bzip2 and xz streams, passing anything else through.",
    packages=find_namespace_packages(include=["kaito", "kaito.*"]),
    package_data={"kaito": ["__init__.pyi"]},
    python_requires=">=3.9",
    install_requires=[
        "cyclopts>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "kaito=kaito.cli.main:run_app",
        ],
    },
)
