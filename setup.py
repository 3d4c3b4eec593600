from setuptools import setup, find_packages

setup(
    name="toolrelay",
    version="0.1.0",
    description="Async gateway to a tool-calling agent worker over stdio JSON-RPC.",
    packages=find_packages(where=".", include=["toolrelay", "toolrelay.*"]),
    package_dir={"": "."},
    include_package_data=True,
    package_data={"toolrelay": ["config/*.json"]},
    install_requires=[
        "colorama>=0.4.6",
        "python-dotenv>=1.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "toolrelay=toolrelay.__main__:run_as_standalone_app",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
