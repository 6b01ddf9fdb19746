# torchring setuptools configuration
from setuptools import find_packages, setup

setup(
    name="torchring",
    version="0.1.0",
    description="Sphere pixelization ring geometries and quadrature weights for PyTorch",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "torch>=2.0",
        "numpy>=1.24",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
)
