#!/usr/bin/env python
from setuptools import (
    find_packages,
    setup,
)

description = "wgpunch: NAT traversal rendezvous for WireGuard tunnels"

extras_require = {
    "dev": [
        "build>=0.9.0",
        "bump_my_version>=0.19.0",
        "ipython",
        "mypy==1.10.0",
        "pre-commit>=3.4.0",
        "tox>=4.0.0",
        "twine",
        "wheel",
    ],
    "test": [
        "pytest>=7.0.0",
        "pytest-xdist>=2.4.0",
        "pytest-trio>=0.5.2",
        "factory-boy>=2.12.0,<3.0.0",
    ],
}

extras_require["dev"] = extras_require["dev"] + extras_require["test"]

try:
    with open("./README.md", encoding="utf-8") as readme:
        long_description = readme.read()
except FileNotFoundError:
    long_description = description

install_requires = [
    "multiaddr>=0.0.9",
    "pynacl>=1.3.0",
    "trio-typing>=0.0.4",
    "trio>=0.26.0",
]

setup(
    name="wgpunch",
    # *IMPORTANT*: Don't manually change the version here. Use bump-my-version.
    version="0.1.0",
    description=description,
    long_description=long_description,
    long_description_content_type="text/markdown",
    include_package_data=True,
    install_requires=install_requires,
    python_requires=">=3.10, <4",
    extras_require=extras_require,
    zip_safe=False,
    keywords="wireguard nat traversal stun hole-punching",
    packages=find_packages(exclude=["scripts", "scripts.*", "tests", "tests.*"]),
    package_data={"wgpunch": ["py.typed"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Natural Language :: English",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    platforms=["unix", "linux"],
    entry_points={
        "console_scripts": [
            "wgpunch-demo=examples.rendezvous.rendezvous:main",
        ],
    },
)
