"""Test package marker.

Test modules live in subdirectories without ``__init__.py`` files, so every
test module basename must be unique across the tree.
"""
