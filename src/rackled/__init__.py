"""Rack LED strip control server"""

__version__ = "0.1.0"
