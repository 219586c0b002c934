"""Decision handlers for headless simulation.

Re-exports the base class and the bundled bot so consumers can do::

    from duel_sim.sim.play_agents import DecisionHandler, HeuristicBot
"""

from .base import DecisionHandler
from .heuristic_agent import HeuristicBot
from .spell_roles import classify_spell_role

__all__ = ["DecisionHandler", "HeuristicBot", "classify_spell_role"]
