from setuptools import setup, find_packages

setup(
    name="PowerSim",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "joblib>=1.3",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest", "tqdm"],
    },
    description="Monte Carlo Power Estimation over Experimental Design Grids",
)
