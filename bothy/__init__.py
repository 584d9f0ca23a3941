"""Bothy: a private npm registry mirrored from GitHub repositories.

Bothy walks the commit history of selected repositories, materialises every
published ``package.json`` version as an immutable package record with a
cached tarball, and serves the result through an npm-compatible façade.
"""
