from setuptools import setup, find_packages
setup(
    name="county-parcels",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.0",
        "requests>=2.31",
        "uvicorn>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.27",
        ]
    },
    entry_points={
        'console_scripts': [
            'county_parcels=county_parcels.__main__:main'
        ]
    }
)
