[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fieldlocalizer"
version = "0.1.0"
description = "Monte Carlo localization of a soccer robot on a marked field from observed lines, corners and the center circle"
requires-python = ">=3.10"
dependencies = []
keywords = ["localization", "particle filter", "amcl", "robot soccer", "robotics"]
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
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fieldlocalizer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
