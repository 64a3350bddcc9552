"""
browserdeck: lifecycle management for remote browser sessions driven by an agent.
"""

__version__ = "0.1.0"
