"""
Offline verification of manager decision logs.
"""

from .simulator import PebbleGame, SimulationReport

__all__ = ["PebbleGame", "SimulationReport"]
