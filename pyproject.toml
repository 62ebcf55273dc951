[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zapif"
version = "1.5.0"
description = "Semantic actions that algebraically simplify C and C++ preprocessor conditionals and drop branches the preprocessor would never select"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "preprocessor",
    "c",
    "c++",
    "ifdef",
    "conditional compilation",
    "simplification",
    "dead code",
]
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
    "Topic :: Software Development :: Pre-processors",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["zapif"]

[tool.hatch.build.targets.sdist]
include = ["zapif", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
target-version = "py310"
line-length = 100

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
strict = true
packages = ["zapif"]
