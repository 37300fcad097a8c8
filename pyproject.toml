[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcpcore"
version = "0.1.0"
description = "Building blocks for Model Context Protocol clients and servers: JSON-RPC codec, handshake, context memory, JWT auth and CSV logging."
requires-python = ">=3.10"
keywords = ["mcp", "model-context-protocol", "json-rpc", "sse", "jwt", "llm"]
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
    "Topic :: Software Development :: Libraries",
]
dependencies = [
    "pyjwt",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
mcpcore = "mcpcore.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["mcpcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
