[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toyasm"
version = "0.1.0"
description = "A small simulated CPU with segmented memory that parses and runs a toy assembly language"
requires-python = ">=3.10"
dependencies = []
keywords = ["assembler", "emulator", "cpu", "virtual machine", "segmented memory", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
    "Topic :: Software Development :: Assemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["toyasm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
