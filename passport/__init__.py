"""
Passport Package

Travel-journal globe: idle-rotating 3D globe with photo location pins and
trip fly-to, driven over an abstract map-rendering surface.
"""

__version__ = "0.3.0"
