"""Prompting package.

This package contains deterministic prompt-construction helpers used by the core
pipeline. It does not perform validation, I/O, or model invocation.
"""
