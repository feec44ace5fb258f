from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="onnx-extractor",
    version="0.4.0",
    author="ONNX Extractor Team",
    author_email="example@example.com",
    description="Lightweight ONNX model parser for tensor shapes, operations, data and execution order",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21.0",
        "onnx>=1.14.0",
        "protobuf>=3.20.2",
        "networkx>=2.5",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
)
