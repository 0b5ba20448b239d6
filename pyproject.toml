[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "georoute"
version = "0.1.0"
description = "Road, rail and transit routing over in-memory graphs, with turn-by-turn Persian instructions"
requires-python = ">=3.10"
dependencies = []
keywords = ["routing", "a-star", "dijkstra", "yen", "polyline", "gis", "transit", "multimodal"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["georoute"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
