"""DeskCrew - a multi-agent help desk console.

A receptionist, a stock manager and a knowledge-base expert share one
chat transcript; a group chat orchestrator decides who speaks next and
when the answer is complete.
"""

__version__ = "0.1.0"
__author__ = "DeskCrew Team"

__all__ = ["__version__", "__author__"]
