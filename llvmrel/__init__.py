"""Build, package and publish a custom LLVM/Clang toolchain."""

__version__ = "0.3.0"
