#!/usr/bin/env python
# coding: utf-8

import importlib
import inspect

from prp_manager.version import __version__, __author__

# List of modules to import from
MODULES = [
    "prp_manager.prp_manager",
    "prp_manager.models",
]

# Initialize __all__ to expose all public classes and functions
__all__ = ["__version__", "__author__"]

# Dynamically import all classes and functions from the specified modules
for module_name in MODULES:
    module = importlib.import_module(module_name)
    for name, obj in inspect.getmembers(module):
        # Include only classes and functions defined in this package
        if (
            (inspect.isclass(obj) or inspect.isfunction(obj))
            and not name.startswith("_")
            and getattr(obj, "__module__", "").startswith("prp_manager")
        ):
            globals()[name] = obj
            __all__.append(name)

"""
prp-manager

Scaffold, lint, validate and track Product Requirements Prompts
"""
