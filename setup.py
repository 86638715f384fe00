from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="towalink-bootstrap",
    version="0.1.0",
    description="Self-bootstrapping agent that brings up a Towalink node's WireGuard management tunnel",
    author="The Towalink Project",
    license="GPL-3.0-only",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "towalink-bootstrap=towalink_bootstrap.cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Topic :: System :: Networking",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX :: Linux",
    ],
)
