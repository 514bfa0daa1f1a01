[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "snowplow"
version = "0.1.0"
description = "HTTP plumbing helpers: short ids, middleware chains, CORS, status payloads, kubeconfig generation and jq-style templates"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "middleware", "cors", "shortid", "kubeconfig", "jq", "template", "json"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["snowplow"]

[tool.pytest.ini_options]
addopts = "-ra"
