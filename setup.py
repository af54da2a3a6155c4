"""
Setup file.
"""

from pathlib import Path

from setuptools import find_packages, setup

URL = "https://github.com/zackees/piped-process"
KEYWORDS = "subprocess pipe channel solver worker"
HERE = Path(__file__).parent
VERSION = "1.0.0"


if __name__ == "__main__":
    setup(
        name="piped-process",
        version=VERSION,
        description="Bidirectional pipe channel to a long-running worker process.",
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["piped-process=piped_process.cli:main"]},
    )
