[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gridnav"
version = "0.1.0"
description = "Occupancy-grid navigation tools: costmaps, frontier exploration, coverage path planning and map merging"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "robotics",
    "occupancy grid",
    "costmap",
    "frontier exploration",
    "coverage planning",
    "map merging",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gridnav"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
