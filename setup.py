from glob import glob
from pathlib import Path

from setuptools import find_packages
from setuptools import setup

NAME = "dpictl"
version = Path("lib/dpictl/version").read_text().strip()


def _data_files():
    yield "lib/udev/rules.d", glob("rules.d/*.rules")


setup(
    name=NAME,
    version=version,
    description="Read and change the pointer resolution (DPI) of Logitech HID++ 2.0 mice.",
    long_description=(
        "dpictl talks HID++ 2.0 to Logitech mice connected by USB cable or Bluetooth and reads or changes "
        "their DPI through the ADJUSTABLE_DPI and EXTENDED_ADJUSTABLE_DPI features."
    ),
    license="GPLv2",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: GNU General Public License v2 (GPLv2)",
        "Natural Language :: English",
        "Programming Language :: Python :: 3 :: Only",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Topic :: Utilities",
    ],
    platforms=["linux", "darwin"],
    python_requires=">=3.8",
    install_requires=[
        'pyudev (>= 0.13) ; platform_system=="Linux"',
        "PyYAML (>= 3.12)",
        "hid-parser",
    ],
    extras_require={
        "test": ["pytest", "pytest-mock", "pytest-cov"],
        "dev": ["ruff"],
    },
    package_dir={"": "lib"},
    packages=find_packages(where="lib"),
    package_data={"dpictl": ["version"]},
    data_files=list(_data_files()),
    include_package_data=True,
    entry_points={"console_scripts": ["dpictl = dpictl.app:main"]},
)
