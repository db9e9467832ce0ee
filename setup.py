# setup.py
from setuptools import setup, find_packages

setup(
    name="flatbvh",
    version="1.0.0",
    description="Flattened BVH construction and stack-based ray traversal",
    packages=find_packages(include=["flatbvh", "flatbvh.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.20.0",
        "numba>=0.55.0",
        "PyOpenGL>=3.1.5",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
