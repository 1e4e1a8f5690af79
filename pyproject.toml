[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "tracey"
version = "0.1.0"
description = "Critical path, drag, slack and antagonism analysis for causal execution traces"
requires-python = ">=3.10"
dependencies = []
keywords = ["trace", "critical path", "drag", "slack", "antagonism", "performance"]
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
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["tracey*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
