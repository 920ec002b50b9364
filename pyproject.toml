[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "qaic-compute"
version = "0.1.0"
description = "Program configuration, device layout and container segments for compute programs on AI accelerator NSPs"
requires-python = ">=3.10"
dependencies = []
keywords = ["hexagon", "nsp", "qpc", "program-config", "toolchain", "layout"]
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
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["qaic_compute"]

[tool.pytest.ini_options]
addopts = "-ra"
