from setuptools import setup, find_packages

setup(
    name="listdata_engine",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2.0",
        "rapidfuzz",
        "regex",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires='>=3.11',
)
