from setuptools import find_namespace_packages, setup

setup(
    name="gradgraph",
    version="0.1.0",
    description="Scalar expression graphs with forward evaluation and memoized reverse-mode differentiation",
    packages=find_namespace_packages(include=["gradgraph", "gradgraph.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "networkx",
        "matplotlib",
    ],
    extras_require={
        "test": [
            "pytest",
            "torch",
        ],
    },
)
