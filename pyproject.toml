[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "docfetch"
version = "0.1.0"
description = "Resolve import paths to source directories through go-import meta tags and git or Subversion checkouts, plus small HTTP helpers for serving documentation."
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = [
    "source",
    "vcs",
    "git",
    "subversion",
    "go-import",
    "http",
    "content-negotiation",
    "wsgi",
    "static-files",
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
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Internet :: WWW/HTTP :: WSGI",
    "Topic :: Software Development :: Version Control",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["docfetch"]

[tool.hatch.build.targets.sdist]
include = [
    "docfetch",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
