[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ckpoolkit"
version = "0.1.0"
description = "Mining pool helper library: SHA-256, difficulty and target maths, encodings, locks, sockets and a stratifier notifier"
requires-python = ">=3.10"
dependencies = []
keywords = ["bitcoin", "mining", "stratum", "sha256", "difficulty", "unix-socket"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ckpool-notifier = "ckpoolkit.notifier:main"

[tool.hatch.build.targets.wheel]
packages = ["ckpoolkit"]

[tool.pytest.ini_options]
addopts = "-ra"
