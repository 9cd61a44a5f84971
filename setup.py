from pathlib import Path

from setuptools import setup

this_directory = Path(__file__).parent
long_description = (this_directory / "README.rst").read_text()

setup(
    name="clean_inject",
    version="0.1.0",
    license="MIT",
    description="Field injection and deep copying for dataclass object graphs, Python 3.10 +",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    packages=["clean_inject"],
    python_requires=">=3.10",
    install_requires=["theutilitybelt"],
    extras_require={"test": ["pytest", "assertive<1.0"]},
    platforms="any",
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3 :: Only",
        "Development Status :: 4 - Beta",
        "Natural Language :: English",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Software Development :: Libraries :: Application Frameworks",
    ],
)
