[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "conflux"
version = "0.1.0"
description = "Multi-tenant role-based access control, cluster authorization, HTTP helpers and benchmarks for a distributed configuration center"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "configuration",
    "rbac",
    "authorization",
    "multi-tenant",
    "raft",
    "cluster",
    "benchmark",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Security",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
conflux-demo = "conflux.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["conflux"]

[tool.hatch.build.targets.sdist]
include = [
    "conflux",
    "tests",
    "pyproject.toml",
    "README.md",
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
warn_redundant_casts = true
