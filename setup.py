from setuptools import setup, find_packages


setup(
    name="mipack",
    version="1.0",
    packages=find_packages(),
    description="Sequential block container files with compressed or base64 blocks and chunked file packing.",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "mipack=mipack.cli:main",
        ]
    },
)
