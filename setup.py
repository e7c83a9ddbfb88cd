import re
from pathlib import Path

from setuptools import setup

__version__ = re.search(
    r'^__version__ = "([^"]+)"', Path(__file__).parent.joinpath("fieldlog", "__init__.py").read_text(), re.M
).group(1)

setup(
    name="fieldlog",
    long_description="fieldlog renders each logging call as one line built from named record fields "
    "(time, sequence id, caller location, level, message) and cooperates with external log rotation.",
    version=__version__,
    packages=[
        "fieldlog",
    ],
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0.3,<9.0.0",
        "pyyaml>=6.0.0,<7.0.0",
        "pyserde>=0.12.0,<1.0.0",
        "beartype>=0.17.0,<1.0.0",
    ],
    extras_require={
        "tests": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
        ],
    },
    entry_points="""
        [console_scripts]
        fieldlog=fieldlog.cli:cli
    """,
)
