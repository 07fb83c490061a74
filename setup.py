from setuptools import setup, find_packages

setup(
    name="tripmap-geo",
    version="0.1.0",
    description="Geocoding, route synthesis and caching for multi-leg trip maps using OpenStreetMap services.",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests",
        "pytz",
        "python-dotenv"
    ],
    extras_require={
        "test": ["pytest"]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
)
