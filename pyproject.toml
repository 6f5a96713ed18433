[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "consolekit"
version = "0.1.0"
description = "Runtime instrumentation statistics, span field visitors and configuration handling for an async task console"
requires-python = ">=3.11"
keywords = ["async", "console", "instrumentation", "tracing", "diagnostics", "histogram"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Typing :: Typed",
]
dependencies = [
    "platformdirs",
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
consolekit = "consolekit.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["consolekit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
