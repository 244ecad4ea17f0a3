"""
hwinventory Setup Script

For development installation:
    pip install -e .

For distribution:
    python setup.py sdist bdist_wheel
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="hwinventory",
    version="1.0.0",
    author="hwinventory Contributors",
    author_email="",
    description="Hardware and software inventory collection for local and remote hosts",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Systems Administration",
        "Topic :: System :: Hardware",
    ],
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "psutil>=5.9.0",
        "GPUtil>=1.4.0",
        "pynvml>=11.5.0",
        "py-cpuinfo>=9.0.0",
        "PyYAML>=6.0",
        "platformdirs>=4.0.0",
        "paramiko>=3.0.0",
        # GPUtil imports distutils, which left the standard library in 3.12
        "setuptools>=65.0.0",
    ],
    extras_require={
        "windows": ["pywin32>=306", "wmi>=1.5.1"],
        "dev": [
            "pytest>=7.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "hwinventory=hwinventory.inventory:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
