[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "varshell"
version = "0.1.0"
description = "Expose named, typed program variables through a small TCP command shell"
requires-python = ">=3.10"
dependencies = []
keywords = ["monitoring", "variables", "registry", "tcp", "shell", "introspection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
varshell = "varshell.main:main"

[tool.hatch.build.targets.wheel]
packages = ["varshell"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
