from setuptools import setup, find_packages

setup(
    name="cellar-deps",
    version="0.1.0",
    description="Dependency expansion for recipe-based formulae.",
    license="GPL-3.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "rich>=13.0.0",
        "PyYAML>=6.0",
        "GitPython>=3.1",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
