from setuptools import setup

setup(
    name="dissect.regexport",
    version="1.0.0",
    packages=["dissect.regexport", "dissect.regexport.tools"],
    python_requires=">=3.9",
    install_requires=[
        "dissect.cstruct>=3.0.dev,<4.0.dev",
        "dissect.regf>=3.0.dev,<4.0.dev",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "regexport=dissect.regexport.tools.regexport:main",
        ],
    },
)
