#!/usr/bin/env python3
import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="strided_tensor",
    version="0.1.0",
    description=("Strided, optionally masked n-dimensional tensors with "
                 "zero-copy views, mask-aware iterators and masked "
                 "axis reductions."),
    long_description=long_description,
    long_description_content_type="text/markdown",
    # strided_tensor has no __init__.py, modules are imported directly
    packages=setuptools.find_namespace_packages(include=["strided_tensor"]),
    include_package_data = True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
    install_requires=[
       'numpy>=2.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
