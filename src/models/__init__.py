"""
Pydantic Models for the Keno catalog proxy

Organization:
- enums.py: retrieval modes, match kinds, data-source markers
- catalog.py: category tree, match specifications and catalog payloads
"""

from .enums import *
from .catalog import *
