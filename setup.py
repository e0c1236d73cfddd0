from setuptools import setup, find_packages

setup(
    name="parsetrace",
    version="0.1.0",
    author="parsetrace contributors",
    description="Readable traces and backtraces of PEG parser rule calls",
    long_description=open("README.md", encoding="UTF-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"parsetrace": ["style.css"]},
    license="MIT",
    classifiers = [
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Debuggers",
        "Topic :: Text Processing",
    ],
    python_requires=">=3.9",
    install_requires = ["html5tagger>=1.2.1"],
    extras_require={
        "test": ["pytest", "coverage", "beautifulsoup4"],
    },
    include_package_data = True,
)
