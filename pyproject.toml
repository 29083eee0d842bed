[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "safelang"
version = "1.0.0"
description = "Front end for the Safe language: parser, molding passes and type checker"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "parser", "type-checker", "language", "safety"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["safelang"]

[tool.pytest.ini_options]
addopts = "-ra"
