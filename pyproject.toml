[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dnsflow"
version = "0.1.0"
description = "Composable DNS query pipeline: blocking, TTL and EDNS0 handling, IPv4/IPv6 preference, matchers and an EDNS0-only UDP upstream"
requires-python = ">=3.11"
keywords = ["dns", "edns0", "pipeline", "matcher", "blackhole", "ttl", "udp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Networking",
    "Framework :: AsyncIO",
]
dependencies = [
    "dnspython>=2.4",
    "pyyaml>=6.0",
    "tomli-w>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["dnsflow"]

[tool.hatch.build.targets.sdist]
include = ["dnsflow", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
