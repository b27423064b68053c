[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "conciliador"
version = "0.1.0"
description = "Building blocks for card payment reconciliation: kiosk sales collection, SIR transaction writing, report storage and a scheduled invoker job."
requires-python = ">=3.10"
keywords = [
    "reconciliation",
    "payments",
    "card transactions",
    "conciliation",
    "sql server",
    "mongodb",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Financial and Insurance Industry",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Accounting",
]
dependencies = [
    "python-dotenv",
    "pymongo",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
conciliador-invoker = "conciliador.invoker:main"

[tool.hatch.build.targets.wheel]
packages = ["conciliador"]

[tool.hatch.build.targets.sdist]
include = [
    "conciliador",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
