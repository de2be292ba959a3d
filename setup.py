from setuptools import setup, find_packages

setup(
    name="redismap",
    version="1.0.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "redis>=4.2",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "fakeredis>=2.10",
        ],
    },
    entry_points={
        "console_scripts": [
            "redismap=redismap.client:main",
        ],
    },
)
