from setuptools import setup, find_packages

setup(
    name="symtaint",
    version="0.1.0",
    packages=find_packages(include=["symtaint", "symtaint.*"]),
    install_requires=[
        "z3-solver>=4.8.12",
        "capstone>=5.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        'console_scripts': [
            'symtaint=symtaint.cli:main',
        ],
    },
    description="Instruction-level symbolic expressions and taint propagation for x86 traces",
    keywords="symbolic execution, taint analysis, binary analysis, x86",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)
