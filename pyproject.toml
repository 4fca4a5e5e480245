[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tlstelnet"
version = "0.3.3"
description = "Telnet client building blocks: ring buffers, STARTTLS sessions and DES CFB64/OFB64 ENCRYPT option negotiation"
requires-python = ">=3.10"
keywords = ["telnet", "tls", "starttls", "ring-buffer", "encryption", "des"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals :: Telnet",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "pycryptodome",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tlstelnet"]

[tool.pytest.ini_options]
addopts = "-ra"
