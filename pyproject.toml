[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "velvetcloth"
version = "0.1.0"
description = "Position-based cloth simulation with SDF colliders, particle collision, pinned vertices and demo scenes"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["cloth", "simulation", "pbd", "xpbd", "physics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
velvetcloth = "velvetcloth.scenes:main"

[tool.setuptools.packages.find]
include = ["velvetcloth*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
