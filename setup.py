from setuptools import setup, find_packages

setup(
    name="cix",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11.4",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "click>=8.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
        "dev": [
            "black>=23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cix=cix.CLI.main:main",
        ],
    },
)
