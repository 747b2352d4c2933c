[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trunkit"
version = "0.1.0"
description = "Layered configuration, build hooks and dist-directory tooling for bundling web applications."
requires-python = ">=3.11"
dependencies = []
keywords = ["build", "bundler", "wasm", "configuration", "hooks", "toml"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
trunkit = "trunkit.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["trunkit"]

[tool.pytest.ini_options]
addopts = "-ra"
