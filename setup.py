from setuptools import setup, find_packages


setup(
    name="slorpit",
    version="0.1",
    packages=find_packages(include=["slorpit", "slorpit.*"]),
    description="Pack files and directory trees into a PDF container and restore them byte-for-byte.",
    author="vercingetorx",
    python_requires=">=3.9",
    install_requires=[
        "pikepdf>=8.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "slorpit=slorpit.cli:main",
            "slorp=slorpit.cli:slorp_main",
            "unslorp=slorpit.cli:unslorp_main",
        ]
    },
)
