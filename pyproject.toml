[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "vzlog"
version = "0.1.0"
description = "Smart-meter logging core: OBIS identifiers, readings, aggregation buffers, configuration parsing and push delivery to middlewares"
requires-python = ">=3.10"
dependencies = []
keywords = ["smart meter", "obis", "energy", "metering", "logging", "home automation"]
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
    "Topic :: Home Automation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["vzlog*"]

[tool.pytest.ini_options]
addopts = "-ra"
