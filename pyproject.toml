[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vppchain"
version = "0.1.0"
description = "Network service chain elements that program a VPP data plane: ACL pinholes and layer 3 cross connects"
requires-python = ">=3.10"
dependencies = []
keywords = ["vpp", "networking", "network-service-mesh", "acl", "l3xc", "cross-connect"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vppchain"]

[tool.pytest.ini_options]
addopts = "-ra"
