"""
dosa - Developer Object Storage Abstraction.

Declare entity types once, register them under a scope and name prefix,
and store them through any connector (in-memory, SQLite, ...) behind one
contract.
"""

__version__ = "0.1.0"

from dosa.core import *  # noqa
