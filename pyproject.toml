[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vpcpeering"
version = "0.1.0"
description = "Generate Terraform JSON configuration for AWS VPC peering with bi-directional routing and DNS options from a YAML peering matrix"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["aws", "vpc", "peering", "terraform", "infrastructure-as-code", "routing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
vpcpeering = "vpcpeering.app:main"

[tool.hatch.build.targets.wheel]
packages = ["vpcpeering"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
