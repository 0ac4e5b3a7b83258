from setuptools import setup, find_packages


setup(
    name="zipcar",
    version="0.1",
    packages=find_packages(include=["zipcar", "zipcar.*"]),
    description="Content-addressed block archives (CID-keyed blocks and root CIDs) in plain ZIP files.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[
        "multiformats>=0.3.1",
    ],
    entry_points={
        "console_scripts": [
            "zipcar=zipcar.cli:main",
        ]
    },
)
