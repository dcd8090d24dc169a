import os
import re
from setuptools import setup

# get the path of the current file
script_dir = os.path.dirname(os.path.abspath(__file__))
libdir = os.path.join(script_dir, "cqlstore")


# read the version from cqlstore/__init__.py, which is `__version__ = "0.1.0"`
def get_version():
    init_file = os.path.join(libdir, "__init__.py")
    with open(init_file, "r") as f:
        init_content = f.read()
    match = re.search(r"^__version__ = \"(\d+\.\d+\.\d+)\"", init_content, re.MULTILINE)
    if match is None:
        raise RuntimeError("Failed to find __version__ in cqlstore/__init__.py")
    return match.group(1)


# this will be executed by pip install / python setup.py bdist_wheel
if __name__ == "__main__":
    versionStr = get_version()
    setup(
        name="cqlstore",
        version=versionStr,
        description="Statement builder, binder and result pager for Cassandra and ScyllaDB",
        packages=["cqlstore"],
        exclude_package_data={'': ['*.pyc']},
        python_requires='>=3.8',
        install_requires=[
            "cassandra-driver>=3.25",
            "pandas>=1.3",
            "numpy>=1.20",
        ],
        extras_require={
            "test": ["pytest>=7.0"],
        },
        zip_safe=False,
    )
