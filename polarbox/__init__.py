"""
polarbox - regtest Bitcoin/Lightning networks on Docker.
"""

__version__ = "0.1.0"
