"""Build system for chain applications.

This package contains tools for compiling a chain application and packaging
cross-compiled releases.

Modules:
    builder: Builder class driving build and release
    flags: Compiler and linker flag assembly
    entrypoint: Main package discovery
    target: os:arch target parsing
    gocmd: Go toolchain invocation
    archive: Release archive creation
    checksum: Release checksum manifest
    cli: Command-line interface for the build system
"""

from __future__ import annotations

from chainbuild.build.builder import Builder, classify_build_errors
from chainbuild.build.flags import BuildFlags, assemble_build_flags
from chainbuild.build.target import TargetSpec, host_target, parse_target

__all__ = [
    "Builder",
    "BuildFlags",
    "TargetSpec",
    "assemble_build_flags",
    "classify_build_errors",
    "host_target",
    "parse_target",
]
