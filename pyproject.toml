[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webdishttp"
version = "0.1.2.dev0"
description = "Incremental HTTP/1.x request and response parser with response rendering helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "parser", "http-parser", "chunked", "response", "cors"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["webdishttp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
