"""
System components for ecopca.
"""

from ecopca.components.config import Config, ConfigManager
