[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcuweb"
version = "0.1.0"
description = "Small HTTP and WebSocket client with Base64, URL encoding and compact string, memory, reader and writer helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "websocket", "client", "base64", "urlencode", "embedded"]
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
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mcuweb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
